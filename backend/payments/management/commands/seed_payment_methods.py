from django.core.management.base import BaseCommand

from payments.models import PaymobConfig, StripeConfig
from payments.services import PaymentMethodRegistry


class Command(BaseCommand):
    help = "Create the payment method registry rows (and optionally empty gateway configs)"

    def add_arguments(self, parser):
        parser.add_argument(
            "--with-configs",
            action="store_true",
            help="Also create inactive Stripe and Paymob configs for admins to fill in",
        )

    def handle(self, *args, **options):
        created = PaymentMethodRegistry.seed_defaults()
        if options["with_configs"]:
            StripeConfig.get_solo()
            PaymobConfig.get_solo()

        if created:
            self.stdout.write(self.style.SUCCESS(f"Payment methods created: {', '.join(created)}"))
        else:
            self.stdout.write("Payment methods already seeded")
