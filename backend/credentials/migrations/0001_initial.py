import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ExamYear',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('year', models.PositiveIntegerField(db_column='year')),
                ('name', models.CharField(db_column='name', max_length=255)),
                ('hijri_year', models.CharField(blank=True, db_column='hijri_year', max_length=50, null=True)),
                ('is_active', models.BooleanField(db_column='is_active', default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_column='created_at')),
            ],
            options={
                'db_table': 'exam_year',
                'ordering': ['-year'],
            },
        ),
        migrations.CreateModel(
            name='School',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('name', models.CharField(db_column='name', max_length=255)),
                ('name_ar', models.CharField(blank=True, db_column='name_ar', max_length=255, null=True)),
                ('registrar_name', models.CharField(blank=True, db_column='registrar_name', max_length=255, null=True)),
                ('email', models.EmailField(db_column='email', max_length=255, unique=True)),
                ('phone', models.CharField(blank=True, db_column='phone', max_length=50, null=True)),
                ('address', models.TextField(blank=True, db_column='address', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_column='created_at')),
                ('updated_at', models.DateTimeField(auto_now=True, db_column='updated_at')),
            ],
            options={
                'db_table': 'school',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Subject',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('name', models.CharField(db_column='name', max_length=255)),
                ('arabic_name', models.CharField(blank=True, db_column='arabic_name', max_length=255, null=True)),
                ('code', models.CharField(db_column='code', max_length=20, unique=True)),
                ('grade', models.PositiveSmallIntegerField(db_column='grade')),
                ('max_score', models.PositiveSmallIntegerField(db_column='max_score', default=100)),
                ('passing_score', models.PositiveSmallIntegerField(db_column='passing_score', default=50)),
                ('order', models.PositiveSmallIntegerField(db_column='display_order', default=0)),
                ('is_active', models.BooleanField(db_column='is_active', default=True)),
            ],
            options={
                'db_table': 'subject',
                'ordering': ['grade', 'order', 'code'],
            },
        ),
        migrations.CreateModel(
            name='Student',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('index_number', models.CharField(
                    blank=True, db_column='index_number', max_length=6, null=True, unique=True,
                    validators=[django.core.validators.RegexValidator('^[1-9][0-9]{5}$', 'Index number must be a 6-digit value.')],
                )),
                ('first_name', models.CharField(db_column='first_name', max_length=255)),
                ('middle_name', models.CharField(blank=True, db_column='middle_name', max_length=255, null=True)),
                ('last_name', models.CharField(db_column='last_name', max_length=255)),
                ('first_name_en', models.CharField(blank=True, db_column='first_name_en', max_length=255, null=True)),
                ('last_name_en', models.CharField(blank=True, db_column='last_name_en', max_length=255, null=True)),
                ('gender', models.CharField(choices=[('male', 'Male'), ('female', 'Female')], db_column='gender', max_length=10)),
                ('date_of_birth', models.DateField(blank=True, db_column='date_of_birth', null=True)),
                ('place_of_birth', models.CharField(blank=True, db_column='place_of_birth', max_length=255, null=True)),
                ('nationality', models.CharField(blank=True, db_column='nationality', max_length=100, null=True)),
                ('grade', models.PositiveSmallIntegerField(db_column='grade')),
                ('status', models.CharField(
                    choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')],
                    db_column='status', default='pending', max_length=20,
                )),
                ('approved_at', models.DateTimeField(blank=True, db_column='approved_at', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_column='created_at')),
                ('updated_at', models.DateTimeField(auto_now=True, db_column='updated_at')),
                ('school', models.ForeignKey(db_column='school_id', on_delete=django.db.models.deletion.PROTECT, related_name='students', to='credentials.school')),
                ('exam_year', models.ForeignKey(db_column='exam_year_id', on_delete=django.db.models.deletion.PROTECT, related_name='students', to='credentials.examyear')),
            ],
            options={
                'db_table': 'student',
                'ordering': ['last_name', 'first_name'],
                'indexes': [
                    models.Index(fields=['school', 'exam_year'], name='idx_student_cohort'),
                    models.Index(fields=['status'], name='idx_student_status'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StudentResult',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('first_term_score', models.DecimalField(blank=True, db_column='first_term_score', decimal_places=2, max_digits=5, null=True)),
                ('exam_score', models.DecimalField(blank=True, db_column='exam_score', decimal_places=2, max_digits=5, null=True)),
                ('total_score', models.DecimalField(blank=True, db_column='total_score', decimal_places=2, max_digits=5, null=True)),
                ('status', models.CharField(
                    choices=[('pending', 'Pending'), ('validated', 'Validated'), ('published', 'Published')],
                    db_column='status', default='pending', max_length=20,
                )),
                ('created_at', models.DateTimeField(auto_now_add=True, db_column='created_at')),
                ('updated_at', models.DateTimeField(auto_now=True, db_column='updated_at')),
                ('student', models.ForeignKey(db_column='student_id', on_delete=django.db.models.deletion.CASCADE, related_name='results', to='credentials.student')),
                ('subject', models.ForeignKey(db_column='subject_id', on_delete=django.db.models.deletion.PROTECT, related_name='results', to='credentials.subject')),
                ('exam_year', models.ForeignKey(db_column='exam_year_id', on_delete=django.db.models.deletion.PROTECT, related_name='results', to='credentials.examyear')),
            ],
            options={
                'db_table': 'student_result',
                'constraints': [
                    models.UniqueConstraint(fields=('student', 'subject', 'exam_year'), name='uq_result_student_subject_year'),
                ],
                'indexes': [
                    models.Index(fields=['student', 'exam_year', 'status'], name='idx_result_student_year_st'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Invoice',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('invoice_number', models.CharField(db_column='invoice_number', max_length=50, unique=True)),
                ('total_students', models.PositiveIntegerField(db_column='total_students', default=0)),
                ('fee_per_student', models.DecimalField(db_column='fee_per_student', decimal_places=2, max_digits=10)),
                ('total_amount', models.DecimalField(db_column='total_amount', decimal_places=2, default=0, max_digits=12)),
                ('paid_amount', models.DecimalField(db_column='paid_amount', decimal_places=2, default=0, max_digits=12)),
                ('status', models.CharField(
                    choices=[('pending', 'Pending'), ('processing', 'Processing'), ('paid', 'Paid')],
                    db_column='status', default='pending', max_length=20,
                )),
                ('payment_method', models.CharField(
                    blank=True,
                    choices=[('bank_transfer', 'Bank Transfer'), ('cash', 'Cash'), ('mobile_money', 'Mobile Money')],
                    db_column='payment_method', max_length=50, null=True,
                )),
                ('bank_slip_reference', models.CharField(blank=True, db_column='bank_slip_reference', max_length=500, null=True)),
                ('slip_uploaded_at', models.DateTimeField(blank=True, db_column='slip_uploaded_at', null=True)),
                ('payment_date', models.DateTimeField(blank=True, db_column='payment_date', null=True)),
                ('notes', models.TextField(blank=True, db_column='notes', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_column='created_at')),
                ('updated_at', models.DateTimeField(auto_now=True, db_column='updated_at')),
                ('school', models.ForeignKey(db_column='school_id', on_delete=django.db.models.deletion.PROTECT, related_name='invoices', to='credentials.school')),
                ('exam_year', models.ForeignKey(db_column='exam_year_id', on_delete=django.db.models.deletion.PROTECT, related_name='invoices', to='credentials.examyear')),
                ('confirmed_by', models.ForeignKey(blank=True, db_column='confirmed_by', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='confirmed_invoices', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'invoice',
                'ordering': ['-created_at', '-id'],
                'constraints': [
                    models.UniqueConstraint(fields=('school', 'exam_year'), name='uq_invoice_school_exam_year'),
                ],
                'indexes': [
                    models.Index(fields=['status'], name='idx_invoice_status'),
                ],
            },
        ),
        migrations.CreateModel(
            name='InvoiceItem',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('description', models.CharField(db_column='description', max_length=255)),
                ('amount', models.DecimalField(db_column='amount', decimal_places=2, max_digits=10)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_column='created_at')),
                ('invoice', models.ForeignKey(db_column='invoice_id', on_delete=django.db.models.deletion.CASCADE, related_name='items', to='credentials.invoice')),
                ('student', models.ForeignKey(db_column='student_id', on_delete=django.db.models.deletion.PROTECT, related_name='invoice_items', to='credentials.student')),
            ],
            options={
                'db_table': 'invoice_item',
                'ordering': ['id'],
                'constraints': [
                    models.UniqueConstraint(fields=('invoice', 'student'), name='uq_invoice_item_student'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Certificate',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('document_number', models.CharField(db_column='document_number', max_length=50, unique=True)),
                ('verification_token', models.CharField(db_column='verification_token', max_length=64, unique=True)),
                ('total_score', models.DecimalField(db_column='total_score', decimal_places=2, max_digits=7)),
                ('max_score', models.DecimalField(db_column='max_score', decimal_places=2, max_digits=7)),
                ('percentage', models.DecimalField(db_column='percentage', decimal_places=2, max_digits=5)),
                ('final_grade', models.CharField(db_column='final_grade', max_length=50)),
                ('final_grade_ar', models.CharField(blank=True, db_column='final_grade_ar', max_length=50, null=True)),
                ('issued_at', models.DateTimeField(db_column='issued_at', default=django.utils.timezone.now)),
                ('print_count', models.PositiveIntegerField(db_column='print_count', default=0)),
                ('last_printed_at', models.DateTimeField(blank=True, db_column='last_printed_at', null=True)),
                ('pdf_reference', models.CharField(blank=True, db_column='pdf_reference', max_length=500, null=True)),
                ('revoked_at', models.DateTimeField(blank=True, db_column='revoked_at', null=True)),
                ('revoked_reason', models.CharField(blank=True, db_column='revoked_reason', max_length=255, null=True)),
                ('expires_at', models.DateTimeField(blank=True, db_column='expires_at', null=True)),
                ('stale_since', models.DateTimeField(blank=True, db_column='stale_since', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_column='created_at')),
                ('student', models.ForeignKey(db_column='student_id', on_delete=django.db.models.deletion.PROTECT, related_name='certificates', to='credentials.student')),
                ('exam_year', models.ForeignKey(db_column='exam_year_id', on_delete=django.db.models.deletion.PROTECT, related_name='certificates', to='credentials.examyear')),
                ('issued_by', models.ForeignKey(blank=True, db_column='issued_by', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('replaces', models.OneToOneField(blank=True, db_column='replaces_id', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='replaced_by', to='credentials.certificate')),
            ],
            options={
                'db_table': 'certificate',
                'ordering': ['-issued_at', '-id'],
                'abstract': False,
                'constraints': [
                    models.UniqueConstraint(
                        condition=models.Q(revoked_at__isnull=True),
                        fields=('student', 'exam_year'),
                        name='uq_certificate_active_per_student_year',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='Transcript',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('document_number', models.CharField(db_column='document_number', max_length=50, unique=True)),
                ('verification_token', models.CharField(db_column='verification_token', max_length=64, unique=True)),
                ('total_score', models.DecimalField(db_column='total_score', decimal_places=2, max_digits=7)),
                ('max_score', models.DecimalField(db_column='max_score', decimal_places=2, max_digits=7)),
                ('percentage', models.DecimalField(db_column='percentage', decimal_places=2, max_digits=5)),
                ('final_grade', models.CharField(db_column='final_grade', max_length=50)),
                ('final_grade_ar', models.CharField(blank=True, db_column='final_grade_ar', max_length=50, null=True)),
                ('issued_at', models.DateTimeField(db_column='issued_at', default=django.utils.timezone.now)),
                ('print_count', models.PositiveIntegerField(db_column='print_count', default=0)),
                ('last_printed_at', models.DateTimeField(blank=True, db_column='last_printed_at', null=True)),
                ('pdf_reference', models.CharField(blank=True, db_column='pdf_reference', max_length=500, null=True)),
                ('revoked_at', models.DateTimeField(blank=True, db_column='revoked_at', null=True)),
                ('revoked_reason', models.CharField(blank=True, db_column='revoked_reason', max_length=255, null=True)),
                ('expires_at', models.DateTimeField(blank=True, db_column='expires_at', null=True)),
                ('stale_since', models.DateTimeField(blank=True, db_column='stale_since', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_column='created_at')),
                ('student', models.ForeignKey(db_column='student_id', on_delete=django.db.models.deletion.PROTECT, related_name='transcripts', to='credentials.student')),
                ('exam_year', models.ForeignKey(db_column='exam_year_id', on_delete=django.db.models.deletion.PROTECT, related_name='transcripts', to='credentials.examyear')),
                ('issued_by', models.ForeignKey(blank=True, db_column='issued_by', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('replaces', models.OneToOneField(blank=True, db_column='replaces_id', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='replaced_by', to='credentials.transcript')),
            ],
            options={
                'db_table': 'transcript',
                'ordering': ['-issued_at', '-id'],
                'abstract': False,
                'constraints': [
                    models.UniqueConstraint(
                        condition=models.Q(revoked_at__isnull=True),
                        fields=('student', 'exam_year'),
                        name='uq_transcript_active_per_student_year',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='CredentialEvent',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('kind', models.CharField(choices=[('certificate', 'Certificate'), ('transcript', 'Transcript')], db_column='kind', max_length=20)),
                ('credential_id', models.BigIntegerField(db_column='credential_id')),
                ('document_number', models.CharField(db_column='document_number', max_length=50)),
                ('event', models.CharField(
                    choices=[('issued', 'Issued'), ('reissued', 'Reissued'), ('revoked', 'Revoked'), ('printed', 'Printed'), ('stale', 'Marked stale')],
                    db_column='event', max_length=20,
                )),
                ('note', models.TextField(blank=True, db_column='note', null=True)),
                ('created_at', models.DateTimeField(db_column='created_at', default=django.utils.timezone.now)),
                ('actor', models.ForeignKey(blank=True, db_column='actor_id', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'credential_event',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['kind', 'credential_id'], name='idx_cred_event_target'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ActivityLog',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('view_name', models.CharField(blank=True, max_length=200, null=True)),
                ('path', models.CharField(blank=True, max_length=1000, null=True)),
                ('method', models.CharField(blank=True, max_length=10, null=True)),
                ('payload', models.JSONField(blank=True, null=True)),
                ('status_code', models.IntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'activity_log',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='ErrorLog',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('path', models.CharField(blank=True, max_length=1000, null=True)),
                ('method', models.CharField(blank=True, max_length=10, null=True)),
                ('message', models.TextField(blank=True, null=True)),
                ('stack', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'error_log',
                'ordering': ['-created_at'],
            },
        ),
    ]
