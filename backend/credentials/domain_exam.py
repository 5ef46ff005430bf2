"""Domain Exam Reference Data (ExamYear, School, Subject, StudentResult)
"""
from django.db import models

__all__ = ['ExamYear', 'School', 'Subject', 'ResultStatus', 'StudentResult']


class ExamYear(models.Model):
    id = models.BigAutoField(primary_key=True)
    year = models.PositiveIntegerField(db_column='year')
    name = models.CharField(max_length=255, db_column='name')
    hijri_year = models.CharField(max_length=50, null=True, blank=True, db_column='hijri_year')
    is_active = models.BooleanField(default=False, db_column='is_active')
    created_at = models.DateTimeField(auto_now_add=True, db_column='created_at')

    class Meta:
        db_table = 'exam_year'
        ordering = ['-year']

    def __str__(self):
        return self.name or str(self.year)


class School(models.Model):
    id = models.BigAutoField(primary_key=True)
    name = models.CharField(max_length=255, db_column='name')
    name_ar = models.CharField(max_length=255, null=True, blank=True, db_column='name_ar')
    registrar_name = models.CharField(max_length=255, null=True, blank=True, db_column='registrar_name')
    email = models.EmailField(max_length=255, unique=True, db_column='email')
    phone = models.CharField(max_length=50, null=True, blank=True, db_column='phone')
    address = models.TextField(null=True, blank=True, db_column='address')
    created_at = models.DateTimeField(auto_now_add=True, db_column='created_at')
    updated_at = models.DateTimeField(auto_now=True, db_column='updated_at')

    class Meta:
        db_table = 'school'
        ordering = ['name']

    def __str__(self):
        return self.name


class Subject(models.Model):
    id = models.BigAutoField(primary_key=True)
    name = models.CharField(max_length=255, db_column='name')
    arabic_name = models.CharField(max_length=255, null=True, blank=True, db_column='arabic_name')
    code = models.CharField(max_length=20, unique=True, db_column='code')
    grade = models.PositiveSmallIntegerField(db_column='grade')
    max_score = models.PositiveSmallIntegerField(default=100, db_column='max_score')
    passing_score = models.PositiveSmallIntegerField(default=50, db_column='passing_score')
    order = models.PositiveSmallIntegerField(default=0, db_column='display_order')
    is_active = models.BooleanField(default=True, db_column='is_active')

    class Meta:
        db_table = 'subject'
        ordering = ['grade', 'order', 'code']

    def __str__(self):
        return f"{self.code} - {self.name}"


class ResultStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    VALIDATED = 'validated', 'Validated'
    PUBLISHED = 'published', 'Published'


class StudentResult(models.Model):
    """One subject score for one student in one exam year."""
    id = models.BigAutoField(primary_key=True)
    student = models.ForeignKey('credentials.Student', on_delete=models.CASCADE, related_name='results', db_column='student_id')
    subject = models.ForeignKey(Subject, on_delete=models.PROTECT, related_name='results', db_column='subject_id')
    exam_year = models.ForeignKey(ExamYear, on_delete=models.PROTECT, related_name='results', db_column='exam_year_id')
    first_term_score = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True, db_column='first_term_score')
    exam_score = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True, db_column='exam_score')
    total_score = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True, db_column='total_score')
    status = models.CharField(max_length=20, choices=ResultStatus.choices, default=ResultStatus.PENDING, db_column='status')
    created_at = models.DateTimeField(auto_now_add=True, db_column='created_at')
    updated_at = models.DateTimeField(auto_now=True, db_column='updated_at')

    class Meta:
        db_table = 'student_result'
        constraints = [
            models.UniqueConstraint(fields=['student', 'subject', 'exam_year'], name='uq_result_student_subject_year'),
        ]
        indexes = [
            models.Index(fields=['student', 'exam_year', 'status'], name='idx_result_student_year_st'),
        ]

    def __str__(self):
        return f"Result {self.student_id}/{self.subject_id} = {self.total_score} ({self.status})"

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        # remembered so signal handlers can detect corrections after issuance
        instance._loaded_state = (instance.__dict__.get('status'), instance.__dict__.get('total_score'))
        return instance

    def save(self, *args, **kwargs):
        # the total follows its components; it is only entered directly when both are empty
        if self.first_term_score is not None or self.exam_score is not None:
            self.total_score = (self.first_term_score or 0) + (self.exam_score or 0)
            update_fields = kwargs.get('update_fields')
            if update_fields is not None and 'total_score' not in update_fields:
                kwargs['update_fields'] = [*update_fields, 'total_score']
        super().save(*args, **kwargs)
