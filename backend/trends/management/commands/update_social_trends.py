from django.core.management.base import BaseCommand

from trends.services import SocialTrendsService


class Command(BaseCommand):
    help = "Refresh Instagram hashtag post counts and trending scores for all locations"

    def add_arguments(self, parser):
        parser.add_argument(
            '--delay',
            type=float,
            default=None,
            help="Seconds to wait between provider calls (default: SOCIAL_TRENDS_DELAY_SECONDS)",
        )

    def handle(self, *args, **options):
        summary = SocialTrendsService(delay_seconds=options['delay']).update_all()
        self.stdout.write(self.style.SUCCESS(
            f"Social trends updated: {summary['success']} success, "
            f"{summary['failed']} failed, {summary['skipped']} skipped"
        ))
