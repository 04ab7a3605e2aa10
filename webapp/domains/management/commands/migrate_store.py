from django.core.management.base import BaseCommand, CommandError

from domains.exceptions import MigrationFailure
from domains.store import ChallengeStore


class Command(BaseCommand):
    help = "Create the store tables and upgrade them to the current schema version"

    def add_arguments(self, parser):
        parser.add_argument("--database", default="default")

    def handle(self, *args, **options):
        store = ChallengeStore(using=options["database"])
        try:
            version = store.init()
        except MigrationFailure as e:
            raise CommandError(f"Database upgrade failed: {e.message}")
        self.stdout.write(self.style.SUCCESS(f"Database at version {version}"))
