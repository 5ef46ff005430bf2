"""Domain Student (registration status + index number binding)
"""
from django.core.exceptions import ValidationError
from django.core.validators import RegexValidator
from django.db import models

from .domain_exam import ExamYear, School

__all__ = ['StudentStatus', 'Gender', 'Student', 'INDEX_NUMBER_RE']

INDEX_NUMBER_RE = r'^[1-9][0-9]{5}$'


class StudentStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    APPROVED = 'approved', 'Approved'
    REJECTED = 'rejected', 'Rejected'


class Gender(models.TextChoices):
    MALE = 'male', 'Male'
    FEMALE = 'female', 'Female'


class Student(models.Model):
    id = models.BigAutoField(primary_key=True)
    # Globally unique across schools and exam years; the unique index is the
    # registry that allocation relies on, see registry.reserve_index_number.
    index_number = models.CharField(
        max_length=6, unique=True, null=True, blank=True, db_column='index_number',
        validators=[RegexValidator(INDEX_NUMBER_RE, 'Index number must be a 6-digit value.')],
    )
    first_name = models.CharField(max_length=255, db_column='first_name')
    middle_name = models.CharField(max_length=255, null=True, blank=True, db_column='middle_name')
    last_name = models.CharField(max_length=255, db_column='last_name')
    first_name_en = models.CharField(max_length=255, null=True, blank=True, db_column='first_name_en')
    last_name_en = models.CharField(max_length=255, null=True, blank=True, db_column='last_name_en')
    gender = models.CharField(max_length=10, choices=Gender.choices, db_column='gender')
    date_of_birth = models.DateField(null=True, blank=True, db_column='date_of_birth')
    place_of_birth = models.CharField(max_length=255, null=True, blank=True, db_column='place_of_birth')
    nationality = models.CharField(max_length=100, null=True, blank=True, db_column='nationality')
    grade = models.PositiveSmallIntegerField(db_column='grade')
    school = models.ForeignKey(School, on_delete=models.PROTECT, related_name='students', db_column='school_id')
    exam_year = models.ForeignKey(ExamYear, on_delete=models.PROTECT, related_name='students', db_column='exam_year_id')
    status = models.CharField(max_length=20, choices=StudentStatus.choices, default=StudentStatus.PENDING, db_column='status')
    approved_at = models.DateTimeField(null=True, blank=True, db_column='approved_at')
    created_at = models.DateTimeField(auto_now_add=True, db_column='created_at')
    updated_at = models.DateTimeField(auto_now=True, db_column='updated_at')

    class Meta:
        db_table = 'student'
        ordering = ['last_name', 'first_name']
        indexes = [
            models.Index(fields=['school', 'exam_year'], name='idx_student_cohort'),
            models.Index(fields=['status'], name='idx_student_status'),
        ]

    def __str__(self):
        return f"{self.index_number or '------'} - {self.full_name}"

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(p for p in parts if p)

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_index_number = instance.__dict__.get('index_number')
        return instance

    def clean(self):
        loaded = getattr(self, '_loaded_index_number', None)
        if loaded and self.index_number != loaded:
            raise ValidationError({'index_number': 'Index number cannot be changed once assigned.'})

    def save(self, *args, **kwargs):
        loaded = getattr(self, '_loaded_index_number', None)
        if loaded and self.index_number != loaded:
            raise ValidationError({'index_number': 'Index number cannot be changed once assigned.'})
        # index_number is only ever written by the registry; a stale in-memory
        # None must not overwrite a number assigned by another request.
        if not self._state.adding and self.index_number is None and kwargs.get('update_fields') is None:
            kwargs['update_fields'] = [
                f.name for f in self._meta.concrete_fields
                if not f.primary_key and f.name != 'index_number'
            ]
        super().save(*args, **kwargs)
        self._loaded_index_number = self.index_number
