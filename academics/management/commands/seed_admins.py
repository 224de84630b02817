"""
Management command: creates test users for each approval role.

Usage:
    python manage.py seed_admins

Creates these accounts (if they don't already exist):

    Username        Password        Role
    ─────────       ─────────       ─────
    dept_admin      dept123         DEPARTMENT_ADMIN
    school_admin    school123       SCHOOL_ADMIN
    senate_admin    senate123       SENATE_ADMIN
    lecturer1       lecturer123     LECTURER

Department and school scope come from the first Department row.
"""
from django.core.management.base import BaseCommand, CommandError
from django.contrib.auth.models import User
from academics.models import UserProfile, Department, Role


USERS = [
    {"username": "dept_admin",   "password": "dept123",     "role": Role.DEPARTMENT_ADMIN},
    {"username": "school_admin", "password": "school123",   "role": Role.SCHOOL_ADMIN},
    {"username": "senate_admin", "password": "senate123",   "role": Role.SENATE_ADMIN},
    {"username": "lecturer1",    "password": "lecturer123", "role": Role.LECTURER},
]


class Command(BaseCommand):
    help = "Create test users with UserProfile roles (department, school, senate admins and a lecturer)"

    def handle(self, *args, **options):
        dept = Department.objects.select_related("school").first()
        if dept is None:
            raise CommandError("Create a School and Department first.")

        for u in USERS:
            user, created = User.objects.get_or_create(
                username=u["username"],
                defaults={"is_staff": u["role"] != Role.LECTURER},
            )
            if created:
                user.set_password(u["password"])
                user.save()
                self.stdout.write(self.style.SUCCESS(
                    f"  Created user: {u['username']} / {u['password']}"
                ))
            else:
                self.stdout.write(f"  User {u['username']} already exists, skipped")

            profile, _ = UserProfile.objects.update_or_create(
                user=user,
                defaults={"role": u["role"], "department": dept, "school": dept.school},
            )
            self.stdout.write(f"    -> role={profile.role}, dept={dept}, school={dept.school}")

        self.stdout.write(self.style.SUCCESS("\nDone. You can now log in with these accounts."))
