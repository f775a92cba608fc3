"""
Management command to recount clearance records.
Refreshes total_entries_approved / total_weeks_completed from approved entries
and moves records to ready_for_school_approval when they are due.
"""
from django.core.management.base import BaseCommand, CommandError

from core.models import User
from logbook.identity import StaticIdentity
from logbook.services import AggregationService, ClearanceWorkflowService
from logbook.stores import get_entry_store


class Command(BaseCommand):
    help = 'Recount clearance records from approved logbook entries'

    def add_arguments(self, parser):
        parser.add_argument(
            '--student',
            action='append',
            dest='students',
            help='Email of a student to recount (repeatable). Defaults to every student.',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would change without saving',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        store = get_entry_store()
        service = ClearanceWorkflowService(store, StaticIdentity(), AggregationService(store))

        if options['students']:
            student_ids = []
            for email in options['students']:
                user = User.objects.filter(email__iexact=email).first()
                if user is None:
                    raise CommandError(f'No user with email {email}')
                student_ids.append(user.pk)
        else:
            student_ids = store.list_clearance_student_ids()

        if not student_ids:
            self.stdout.write(self.style.SUCCESS('No clearance records to recount'))
            return

        updated = 0
        for student_id in student_ids:
            changed = service.recount(student_id, dry_run=dry_run)
            if changed is None:
                self.stdout.write(f'  - student {student_id}: no clearance record')
            elif changed:
                updated += 1
                fields = ', '.join(f'{name}={value}' for name, value in changed.items())
                self.stdout.write(f'  - student {student_id}: {fields}')

        if dry_run:
            self.stdout.write(self.style.WARNING(
                f'DRY RUN: Would update {updated} of {len(student_ids)} clearance record(s)'
            ))
        else:
            self.stdout.write(self.style.SUCCESS(
                f'Updated {updated} of {len(student_ids)} clearance record(s)'
            ))
