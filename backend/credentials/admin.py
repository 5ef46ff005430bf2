from django.contrib import admin

from .domain_credential import Certificate, CredentialEvent, Transcript
from .domain_exam import ExamYear, School, StudentResult, Subject
from .domain_invoice import Invoice, InvoiceItem
from .domain_logs import ActivityLog, ErrorLog
from .domain_student import Student


@admin.register(ExamYear)
class ExamYearAdmin(admin.ModelAdmin):
    list_display = ('year', 'name', 'hijri_year', 'is_active')
    list_filter = ('is_active',)


@admin.register(School)
class SchoolAdmin(admin.ModelAdmin):
    list_display = ('name', 'name_ar', 'registrar_name', 'email', 'phone')
    search_fields = ('name', 'name_ar', 'email')


@admin.register(Subject)
class SubjectAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'arabic_name', 'grade', 'max_score', 'passing_score', 'order', 'is_active')
    list_filter = ('grade', 'is_active')
    search_fields = ('code', 'name', 'arabic_name')


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ('index_number', 'first_name', 'last_name', 'grade', 'school', 'exam_year', 'status')
    list_filter = ('status', 'exam_year', 'grade')
    search_fields = ('index_number', 'first_name', 'last_name', 'first_name_en', 'last_name_en')
    # assigned by the allocator only
    readonly_fields = ('index_number', 'status', 'approved_at')


@admin.register(StudentResult)
class StudentResultAdmin(admin.ModelAdmin):
    list_display = ('student', 'subject', 'exam_year', 'total_score', 'status')
    list_filter = ('status', 'exam_year', 'subject')
    search_fields = ('student__index_number', 'student__last_name')


class InvoiceItemInline(admin.TabularInline):
    model = InvoiceItem
    extra = 0
    readonly_fields = ('student', 'description', 'amount')
    can_delete = False


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ('invoice_number', 'school', 'exam_year', 'total_students', 'total_amount', 'status', 'payment_date')
    list_filter = ('status', 'exam_year', 'payment_method')
    search_fields = ('invoice_number', 'school__name')
    # the state machine owns these; edit through the API actions
    readonly_fields = (
        'invoice_number', 'status', 'total_students', 'fee_per_student', 'total_amount',
        'paid_amount', 'payment_date', 'confirmed_by', 'bank_slip_reference', 'slip_uploaded_at',
    )
    inlines = [InvoiceItemInline]


class _CredentialAdmin(admin.ModelAdmin):
    list_display = ('document_number', 'student', 'exam_year', 'final_grade', 'issued_at', 'print_count', 'revoked_at', 'stale_since')
    list_filter = ('exam_year', 'final_grade')
    search_fields = ('document_number', 'student__index_number', 'student__last_name')
    readonly_fields = [f.name for f in Certificate._meta.fields]

    def has_delete_permission(self, request, obj=None):
        # credentials are revoked, never deleted
        return False


@admin.register(Certificate)
class CertificateAdmin(_CredentialAdmin):
    pass


@admin.register(Transcript)
class TranscriptAdmin(_CredentialAdmin):
    pass


@admin.register(CredentialEvent)
class CredentialEventAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'kind', 'document_number', 'event', 'actor')
    list_filter = ('kind', 'event')
    search_fields = ('document_number',)


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'user', 'method', 'path', 'status_code')
    list_filter = ('method', 'status_code')
    search_fields = ('path', 'view_name')


@admin.register(ErrorLog)
class ErrorLogAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'user', 'method', 'path', 'message')
    search_fields = ('path', 'message')
