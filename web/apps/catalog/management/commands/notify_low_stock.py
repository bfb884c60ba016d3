"""Daily low-stock report, e.g. crontab ``0 21 * * * python manage.py notify_low_stock``."""

from django.core.management.base import BaseCommand

from apps.catalog.alerts import notify_admins_of_low_stock


class Command(BaseCommand):
    help = "Email administrators the products whose stock is below the buffer limit."

    def add_arguments(self, parser):
        parser.add_argument("--limit", type=int, default=None, help="Override LOW_STOCK_BUFFER_LIMIT.")

    def handle(self, *args, **options):
        result = notify_admins_of_low_stock(limit=options["limit"])
        if result.sent:
            self.stdout.write(f"Notified {len(result.recipients)} admin(s) about {result.products} product(s).")
        elif result.products:
            self.stdout.write(f"{result.products} product(s) low on stock but no admin to notify.")
        else:
            self.stdout.write("No low-stock items detected.")
