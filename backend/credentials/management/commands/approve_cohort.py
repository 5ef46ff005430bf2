"""Approve and number every student covered by a paid invoice."""

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from credentials.approval import approve_cohort_for_invoice
from credentials.exceptions import CredentialError


class Command(BaseCommand):
    help = "Approve the students of a paid invoice's cohort and assign their index numbers."

    def add_arguments(self, parser):
        parser.add_argument("invoice_id", type=int)

    def handle(self, *args, **options):
        try:
            result = approve_cohort_for_invoice(options["invoice_id"])
        except CredentialError as exc:
            raise CommandError(exc.message)

        counts = result.counts
        self.stdout.write(self.style.SUCCESS(
            f"Approved {counts['succeeded']} student(s); "
            f"skipped {counts['skipped']}; failed {counts['failed']}."
        ))
        for entry in result.failed:
            self.stdout.write(self.style.WARNING(f"  student {entry['id']}: {entry['code']} - {entry['reason']}"))
