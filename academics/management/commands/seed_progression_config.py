from django.core.management.base import BaseCommand
from academics.models import ProgressionConfig, AcademicYear, SemesterType


class Command(BaseCommand):
    help = 'Seed the default ProgressionConfig and, optionally, the active academic year'

    def add_arguments(self, parser):
        parser.add_argument('--academic-year', help='e.g. 2024/2025; becomes the active year')
        parser.add_argument('--semester', default=SemesterType.FIRST, choices=SemesterType.values)

    def handle(self, *args, **options):
        cfg = ProgressionConfig.objects.first()
        if cfg is None:
            cfg = ProgressionConfig.objects.create()
            self.stdout.write(self.style.SUCCESS(f'Created {cfg}'))
        else:
            self.stdout.write(self.style.NOTICE(f'{cfg} already exists'))

        name = options.get('academic_year')
        if name:
            ay, created = AcademicYear.objects.get_or_create(name=name)
            AcademicYear.objects.exclude(pk=ay.pk).update(is_active=False)
            ay.is_active = True
            ay.current_semester = options['semester']
            ay.save()
            verb = 'Created' if created else 'Activated'
            self.stdout.write(self.style.SUCCESS(f'{verb} academic year {ay} ({ay.current_semester})'))

        self.stdout.write(self.style.SUCCESS('Seeding completed.'))
