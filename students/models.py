# students/models.py

import uuid

from django.core.exceptions import ValidationError
from django.db import models


class Student(models.Model):
    """
    Thin reference to a learner owned by the student registry.

    The fee ledger only needs identity (for NotFound checks and receipts)
    and a row it can lock to serialize concurrent fee receipts for the
    same student.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    student_no = models.CharField(max_length=32, unique=True)
    full_name = models.CharField(max_length=200)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["student_no"]

    def __str__(self):
        return f"{self.student_no} – {self.full_name}"

    def clean(self):
        self.student_no = (self.student_no or "").strip()
        self.full_name = (self.full_name or "").strip()
        if not self.student_no:
            raise ValidationError({"student_no": "student_no is required"})
        if not self.full_name:
            raise ValidationError({"full_name": "full_name is required"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
