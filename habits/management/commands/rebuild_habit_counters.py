from django.core.management.base import BaseCommand, CommandError

from habits.models import Habit
from habits.services.repair import rebuild_counters


class Command(BaseCommand):
    help = "Recompute streak and completion counters from the habit log."

    def add_arguments(self, parser):
        parser.add_argument("--habit", type=int, help="Only rebuild this habit id.")
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report drifted counters without saving them.",
        )

    def handle(self, *args, **options):
        qs = Habit.objects.order_by("pk")
        if options["habit"] is not None:
            qs = qs.filter(pk=options["habit"])
            if not qs.exists():
                raise CommandError(f"Habit {options['habit']} does not exist")

        drifted = 0
        for habit in qs.iterator():
            before, after = rebuild_counters(habit, commit=not options["dry_run"])
            if before != after:
                drifted += 1
                self.stdout.write(f"habit {habit.pk}: {before} -> {after}")

        verb = "would be fixed" if options["dry_run"] else "fixed"
        self.stdout.write(self.style.SUCCESS(f"{drifted} habit(s) {verb}"))
