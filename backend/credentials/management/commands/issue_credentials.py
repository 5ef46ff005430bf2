"""Issue certificates or transcripts for one school's cohort."""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from credentials.domain_credential import CredentialKind
from credentials.exceptions import CredentialError
from credentials.issuance import issue_credentials_for_school


class Command(BaseCommand):
    help = "Issue certificates or transcripts for every approved student of a school in an exam year."

    def add_arguments(self, parser):
        parser.add_argument("school_id", type=int)
        parser.add_argument("exam_year_id", type=int)
        parser.add_argument("--kind", choices=CredentialKind.values, default=CredentialKind.CERTIFICATE)
        parser.add_argument("--reissue", action="store_true", help="Replace credentials that are already active.")
        parser.add_argument("--issued-by", dest="issued_by", default=None, help="Username recorded as issuer.")

    def handle(self, *args, **options):
        issued_by = None
        if options["issued_by"]:
            issued_by = get_user_model().objects.filter(username=options["issued_by"]).first()
            if issued_by is None:
                raise CommandError(f"User {options['issued_by']!r} not found.")
        try:
            result = issue_credentials_for_school(
                options["school_id"],
                options["exam_year_id"],
                options["kind"],
                reissue=options["reissue"],
                issued_by=issued_by,
            )
        except CredentialError as exc:
            raise CommandError(exc.message)

        counts = result.counts
        self.stdout.write(self.style.SUCCESS(
            f"Issued {counts['succeeded']} {options['kind']}(s); "
            f"skipped {counts['skipped']}; failed {counts['failed']}."
        ))
        for entry in result.failed:
            self.stdout.write(self.style.WARNING(f"  student {entry['id']}: {entry['code']} - {entry['reason']}"))
