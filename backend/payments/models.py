from datetime import timedelta
from decimal import Decimal
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core_backend.results import ErrorKind, ServiceResult


class PaymentProvider(models.TextChoices):
    STRIPE = "Stripe", _("Stripe")
    PAYMOB = "Paymob", _("Paymob")
    INTERNAL = "Internal", _("Internal")


class PaymentMethod(models.Model):
    """
    Registry entry for one payment method. ``is_active`` is the only switch
    deciding whether customers may pick the method.
    """

    class Name(models.TextChoices):
        CARD = "Card", _("Card")
        PAYMOB_CARD = "Paymob-Card", _("Paymob Card")
        PAYMOB_WALLET = "Paymob-Wallet", _("Mobile Wallet")
        PAYMOB_KIOSK = "Paymob-Kiosk", _("Kiosk")
        PAYMOB_INSTALLMENTS = "Paymob-Installments", _("Installments")
        PAYMOB_VALU = "Paymob-ValU", _("ValU")
        COD = "COD", _("Cash on Delivery")

    PROVIDER_BY_NAME = {
        Name.CARD: PaymentProvider.STRIPE,
        Name.PAYMOB_CARD: PaymentProvider.PAYMOB,
        Name.PAYMOB_WALLET: PaymentProvider.PAYMOB,
        Name.PAYMOB_KIOSK: PaymentProvider.PAYMOB,
        Name.PAYMOB_INSTALLMENTS: PaymentProvider.PAYMOB,
        Name.PAYMOB_VALU: PaymentProvider.PAYMOB,
        Name.COD: PaymentProvider.INTERNAL,
    }

    name = models.CharField(max_length=30, choices=Name.choices, unique=True)
    provider = models.CharField(max_length=20, choices=PaymentProvider.choices, editable=False)
    is_active = models.BooleanField(default=False)
    display_name = models.CharField(max_length=100, blank=True)
    description = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        state = "active" if self.is_active else "inactive"
        return f"{self.name} ({self.provider}, {state})"

    def save(self, *args, **kwargs):
        # Provider follows from the name; it is never set independently.
        self.provider = self.PROVIDER_BY_NAME[self.Name(self.name)]
        if not self.display_name:
            self.display_name = self.Name(self.name).label
        super().save(*args, **kwargs)


class SingletonProviderConfig(models.Model):
    """
    Gateway configuration living at a fixed primary key, one row per
    provider. ``load()`` never creates; ``get_solo()`` does.
    """

    SINGLETON_PK = 1
    provider = None

    is_active = models.BooleanField(default=False)
    is_live_mode = models.BooleanField(default=False)
    min_order_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0"))],
    )
    max_order_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("10000.00"))
    currency = models.CharField(max_length=3, default="usd")
    refund_window_hours = models.PositiveIntegerField(
        default=24, help_text=_("0 disables the window check.")
    )
    allow_partial_refunds = models.BooleanField(default=True)
    auto_refund_on_cancellation = models.BooleanField(default=False)
    free_delivery_threshold = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00"),
        help_text=_("Orders at or above this subtotal ship free. 0 disables."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        self.pk = self.SINGLETON_PK
        super().save(*args, **kwargs)

    @classmethod
    def load(cls):
        return cls.objects.filter(pk=cls.SINGLETON_PK).first()

    @classmethod
    def get_solo(cls):
        config, _ = cls.objects.get_or_create(pk=cls.SINGLETON_PK)
        return config

    def amount_bounds_messages(self):
        """(too-low, too-high) message templates."""
        currency = self.currency.upper()
        return (
            f"Minimum order amount is {self.min_order_amount} {currency}",
            f"Maximum order amount is {self.max_order_amount} {currency}",
        )

    def validate_order_amount(self, amount: Decimal, method_name=None) -> ServiceResult:
        too_low, too_high = self.amount_bounds_messages()
        if amount < self.min_order_amount:
            return ServiceResult.fail(ErrorKind.POLICY, too_low)
        if self.max_order_amount and amount > self.max_order_amount:
            return ServiceResult.fail(ErrorKind.POLICY, too_high)
        return ServiceResult.ok()

    def can_refund(self, order_created_at, refund_amount: Decimal, order_total: Decimal, now=None) -> ServiceResult:
        if refund_amount is None or refund_amount <= 0:
            return ServiceResult.fail(ErrorKind.VALIDATION, "Refund amount must be greater than zero")
        if refund_amount > order_total:
            return ServiceResult.fail(ErrorKind.POLICY, "Refund amount cannot exceed order total")

        if self.refund_window_hours > 0:
            hours_since_order = ((now or timezone.now()) - order_created_at).total_seconds() / 3600
            if hours_since_order > self.refund_window_hours:
                return ServiceResult.fail(
                    ErrorKind.POLICY, f"Refund window of {self.refund_window_hours} hours has expired"
                )

        if refund_amount < order_total and not self.allow_partial_refunds:
            return ServiceResult.fail(ErrorKind.POLICY, "Partial refunds are not allowed")

        return ServiceResult.ok()

    def summary(self):
        return {
            "mode": "Live" if self.is_live_mode else "Test",
            "isActive": self.is_active,
            "currency": self.currency.upper(),
            "orderLimits": {"min": str(self.min_order_amount), "max": str(self.max_order_amount)},
            "refundPolicy": {
                "windowHours": self.refund_window_hours,
                "partialAllowed": self.allow_partial_refunds,
                "autoRefund": self.auto_refund_on_cancellation,
            },
        }


class StripeConfig(SingletonProviderConfig):
    provider = PaymentProvider.STRIPE

    class CaptureMethod(models.TextChoices):
        AUTOMATIC = "automatic", _("Automatic")
        MANUAL = "manual", _("Manual")

    class FutureUsage(models.TextChoices):
        ON_SESSION = "on_session", _("On session")
        OFF_SESSION = "off_session", _("Off session")

    REFUND_REASONS = ["requested_by_customer", "duplicate", "fraudulent"]

    checkout_mode = models.CharField(max_length=20, default="payment")
    checkout_expiration_minutes = models.PositiveIntegerField(default=30)
    allow_promotion_codes = models.BooleanField(default=False)
    collect_billing_address = models.BooleanField(default=False)
    collect_phone_number = models.BooleanField(default=False)
    create_customer_on_checkout = models.BooleanField(default=False)
    save_card_for_future_use = models.BooleanField(default=False)
    setup_future_usage = models.CharField(
        max_length=20, choices=FutureUsage.choices, blank=True, default=""
    )
    enable_link = models.BooleanField(default=False)
    enable_apple_pay = models.BooleanField(default=False)
    enable_google_pay = models.BooleanField(default=False)
    capture_method = models.CharField(
        max_length=20, choices=CaptureMethod.choices, default=CaptureMethod.AUTOMATIC
    )
    statement_descriptor = models.CharField(max_length=22, blank=True, default="")
    statement_descriptor_suffix = models.CharField(max_length=22, blank=True, default="")
    send_receipts = models.BooleanField(default=True)
    automatic_tax = models.BooleanField(default=False)
    success_url = models.URLField(blank=True, default="")
    cancel_url = models.URLField(blank=True, default="")

    class Meta:
        verbose_name = _("Stripe configuration")

    def __str__(self):
        return f"Stripe config ({'live' if self.is_live_mode else 'test'})"

    def payment_method_types(self):
        # Apple Pay and Google Pay ride on "card" in hosted checkout.
        methods = ["card"]
        if self.enable_link:
            methods.append("link")
        return methods

    def payment_intent_options(self):
        options = {}
        if self.capture_method == self.CaptureMethod.MANUAL:
            options["capture_method"] = "manual"
        if self.save_card_for_future_use and self.setup_future_usage:
            options["setup_future_usage"] = self.setup_future_usage
        if self.statement_descriptor_suffix:
            options["statement_descriptor_suffix"] = self.statement_descriptor_suffix
        return options

    def checkout_session_options(self, now=None, customer_email=None):
        """
        Keyword arguments for ``stripe.checkout.Session.create`` derived from
        this configuration. Line items and URLs are added by the caller.
        """
        now = now or timezone.now()
        minutes = max(30, self.checkout_expiration_minutes)
        options = {
            "mode": self.checkout_mode or "payment",
            "payment_method_types": self.payment_method_types(),
            "expires_at": int((now + timedelta(minutes=minutes)).timestamp()),
        }
        intent_options = self.payment_intent_options()
        if intent_options:
            options["payment_intent_data"] = intent_options
        if self.allow_promotion_codes:
            options["allow_promotion_codes"] = True
        if self.collect_billing_address:
            options["billing_address_collection"] = "required"
        if self.collect_phone_number:
            options["phone_number_collection"] = {"enabled": True}
        if self.automatic_tax:
            options["automatic_tax"] = {"enabled": True}
        if self.create_customer_on_checkout:
            options["customer_creation"] = "always"
        if self.send_receipts and customer_email:
            options["customer_email"] = customer_email
        return options


class PaymobConfig(SingletonProviderConfig):
    provider = PaymentProvider.PAYMOB

    class CheckoutType(models.TextChoices):
        HOSTED = "hosted", _("Hosted")
        IFRAME = "iframe", _("Iframe")

    max_order_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("50000.00"))
    currency = models.CharField(max_length=3, default="EGP")
    refund_window_hours = models.PositiveIntegerField(default=72)
    allow_void_transaction = models.BooleanField(default=True)
    auto_void_on_cancellation = models.BooleanField(default=True)
    card_integration_name = models.CharField(max_length=50, default="card")
    wallet_integration_name = models.CharField(max_length=50, default="wallet")
    kiosk_integration_name = models.CharField(max_length=50, default="kiosk")
    installments_integration_name = models.CharField(max_length=50, default="installments")
    valu_integration_name = models.CharField(max_length=50, default="valu")
    min_installment_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("500.00"))
    valu_min_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("500.00"))
    transaction_expiration_minutes = models.PositiveIntegerField(default=30)
    kiosk_expiration_hours = models.PositiveIntegerField(default=24)
    save_card_enabled = models.BooleanField(default=False)
    require_3d_secure = models.BooleanField(default=True)
    checkout_type = models.CharField(max_length=10, choices=CheckoutType.choices, default=CheckoutType.HOSTED)
    custom_redirect_url = models.URLField(blank=True, default="")
    custom_webhook_url = models.URLField(blank=True, default="")

    class Meta:
        verbose_name = _("Paymob configuration")

    def __str__(self):
        return f"Paymob config ({'live' if self.is_live_mode else 'test'})"

    def integration_name(self, method_name):
        return {
            PaymentMethod.Name.PAYMOB_CARD: self.card_integration_name,
            PaymentMethod.Name.PAYMOB_WALLET: self.wallet_integration_name,
            PaymentMethod.Name.PAYMOB_KIOSK: self.kiosk_integration_name,
            PaymentMethod.Name.PAYMOB_INSTALLMENTS: self.installments_integration_name,
            PaymentMethod.Name.PAYMOB_VALU: self.valu_integration_name,
        }.get(method_name)

    def amount_bounds_messages(self):
        return (
            f"Minimum order amount for Paymob is {self.min_order_amount} {self.currency}",
            f"Maximum order amount for Paymob is {self.max_order_amount} {self.currency}",
        )

    def validate_order_amount(self, amount: Decimal, method_name=None) -> ServiceResult:
        result = super().validate_order_amount(amount, method_name)
        if not result.success:
            return result
        if method_name == PaymentMethod.Name.PAYMOB_INSTALLMENTS and amount < self.min_installment_amount:
            return ServiceResult.fail(
                ErrorKind.POLICY,
                f"Minimum amount for installments is {self.min_installment_amount} {self.currency}",
            )
        if method_name == PaymentMethod.Name.PAYMOB_VALU and amount < self.valu_min_amount:
            return ServiceResult.fail(
                ErrorKind.POLICY, f"Minimum amount for ValU is {self.valu_min_amount} {self.currency}"
            )
        return ServiceResult.ok()

    def expiration_seconds(self, method_name=None) -> int:
        if method_name == PaymentMethod.Name.PAYMOB_KIOSK:
            return self.kiosk_expiration_hours * 3600
        return self.transaction_expiration_minutes * 60
