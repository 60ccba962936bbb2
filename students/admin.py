# students/admin.py

from django.contrib import admin

from students.models import Student


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ("student_no", "full_name", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("student_no", "full_name")
    ordering = ("student_no",)
