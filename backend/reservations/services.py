from datetime import datetime, time
from typing import Optional
import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from core_backend.results import ErrorKind, ServiceResult
from .models import Reservation, Table

logger = logging.getLogger(__name__)

VALID_SLOTS = ["16:00", "18:00", "20:00", "22:00"]

SLOT_TAKEN_MESSAGE = (
    "Selected table is not available at this time slot. "
    "Please choose another table or time slot."
)


class ReservationService:
    """
    Table/slot validation and booking. Availability is checked up front for
    a friendly error, but the unique constraint on (table, reservation_date)
    is what actually prevents double-booking.
    """

    @staticmethod
    def build_reservation_date(date_str: str, slot: str) -> ServiceResult:
        """Combine ``YYYY-MM-DD`` and ``HH:MM`` into an aware local datetime."""
        if slot not in VALID_SLOTS:
            return ServiceResult.fail(
                ErrorKind.VALIDATION,
                f"Invalid slot time. Available slots are: {', '.join(VALID_SLOTS)}",
            )
        try:
            day = datetime.strptime(str(date_str), "%Y-%m-%d").date()
        except (TypeError, ValueError):
            return ServiceResult.fail(ErrorKind.VALIDATION, "Invalid date format. Use YYYY-MM-DD")

        hours, minutes = (int(part) for part in slot.split(":"))
        naive = datetime.combine(day, time(hours, minutes))
        return ServiceResult.ok(timezone.make_aware(naive, timezone.get_current_timezone()))

    @staticmethod
    def validate_slot_and_date(slot: str, date_str: str, now=None) -> ServiceResult:
        result = ReservationService.build_reservation_date(date_str, slot)
        if not result.success:
            return result
        if result.data < (now or timezone.now()):
            return ServiceResult.fail(
                ErrorKind.VALIDATION, "Cannot create reservation for a past date and time"
            )
        return result

    @staticmethod
    def validate_table(table_id) -> ServiceResult:
        table = Table.objects.filter(pk=table_id).first() if str(table_id).isdigit() else None
        if table is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Table not found")
        if not table.is_active:
            return ServiceResult.fail(ErrorKind.POLICY, "Selected table is not active")
        return ServiceResult.ok(table)

    @staticmethod
    def is_table_available(table: Table, reservation_date: datetime) -> bool:
        return not Reservation.objects.filter(
            table=table, reservation_date=reservation_date
        ).exclude(status=Reservation.Status.CANCELLED).exists()

    @staticmethod
    def validate_in_place(table_id, date_str, slot, now=None) -> ServiceResult:
        """
        Every check an in-place order needs before anything is written.
        Returns ``(table, reservation_date)``.
        """
        if not date_str or not slot:
            return ServiceResult.fail(
                ErrorKind.VALIDATION, "Date and time slot are required for in-place orders"
            )

        table_result = ReservationService.validate_table(table_id)
        if not table_result.success:
            return table_result

        date_result = ReservationService.validate_slot_and_date(slot, date_str, now)
        if not date_result.success:
            return date_result

        table, reservation_date = table_result.data, date_result.data
        if not ReservationService.is_table_available(table, reservation_date):
            return ServiceResult.fail(ErrorKind.CONFLICT, SLOT_TAKEN_MESSAGE)

        return ServiceResult.ok((table, reservation_date))

    @staticmethod
    def create_reservation(
        user,
        table: Table,
        reservation_date: datetime,
        order=None,
        status: str = Reservation.Status.PENDING,
    ) -> ServiceResult:
        try:
            with transaction.atomic():
                reservation = Reservation.objects.create(
                    user=user,
                    table=table,
                    reservation_date=reservation_date,
                    order=order,
                    status=status,
                )
        except IntegrityError:
            logger.info(f"Slot clash for table {table.number} at {reservation_date.isoformat()}")
            return ServiceResult.fail(ErrorKind.CONFLICT, SLOT_TAKEN_MESSAGE)

        logger.info(f"Reservation {reservation.pk}: table {table.number} at {reservation_date.isoformat()} ({status})")
        return ServiceResult.ok(reservation, message="Reservation created successfully", status_code=201)

    @staticmethod
    def book(user, table_id, date_str, slot) -> ServiceResult:
        validation = ReservationService.validate_in_place(table_id, date_str, slot)
        if not validation.success:
            return validation
        table, reservation_date = validation.data
        return ReservationService.create_reservation(user, table, reservation_date)

    @staticmethod
    def cancel_reservation(reservation: Reservation) -> bool:
        """Cancel unless already cancelled; frees the slot for rebooking."""
        updated = Reservation.objects.filter(pk=reservation.pk).exclude(
            status=Reservation.Status.CANCELLED
        ).update(status=Reservation.Status.CANCELLED, updated_at=timezone.now())
        if updated:
            logger.info(f"Reservation {reservation.pk} cancelled")
        reservation.refresh_from_db()
        return bool(updated)

    @staticmethod
    def cancel_for_order(order) -> bool:
        reservation = Reservation.objects.filter(order=order).first()
        if reservation is None:
            return False
        return ReservationService.cancel_reservation(reservation)

    @staticmethod
    def update_status(reservation: Reservation, status: str) -> ServiceResult:
        if status not in Reservation.Status.values:
            return ServiceResult.fail(
                ErrorKind.VALIDATION, "Invalid status. Must be Pending, Confirmed, or Cancelled"
            )
        if status == Reservation.Status.CANCELLED:
            ReservationService.cancel_reservation(reservation)
            return ServiceResult.ok(reservation, message="Reservation updated successfully")

        reservation.status = status
        try:
            with transaction.atomic():
                reservation.save(update_fields=["status", "updated_at"])
        except IntegrityError:
            reservation.refresh_from_db()
            return ServiceResult.fail(ErrorKind.CONFLICT, SLOT_TAKEN_MESSAGE)
        return ServiceResult.ok(reservation, message="Reservation updated successfully")

    @staticmethod
    def get_slots_for_date(date_str: str, now=None) -> ServiceResult:
        """Availability of every active table in every slot of one day."""
        slot_dates = {}
        for slot in VALID_SLOTS:
            result = ReservationService.build_reservation_date(date_str, slot)
            if not result.success:
                return result
            slot_dates[slot] = result.data

        taken = set(
            Reservation.objects.filter(reservation_date__in=slot_dates.values())
            .exclude(status=Reservation.Status.CANCELLED)
            .values_list("table_id", "reservation_date")
        )
        current = now or timezone.now()
        data = []
        for table in Table.objects.filter(is_active=True):
            data.append({
                "tableId": table.pk,
                "tableNumber": table.number,
                "capacity": table.capacity,
                "slots": [
                    {
                        "time": slot,
                        "available": (table.pk, when) not in taken and when >= current,
                    }
                    for slot, when in slot_dates.items()
                ],
            })
        return ServiceResult.ok(data)

    @staticmethod
    def get_user_reservations(user, status: Optional[str] = None):
        queryset = Reservation.objects.filter(user=user).select_related("table")
        if status:
            queryset = queryset.filter(status=status)
        return queryset.order_by("-reservation_date")

    @staticmethod
    def move_for_order(order, table: Table, reservation_date: datetime) -> ServiceResult:
        """Point an order's booking at another table or slot, creating one if the order has none."""
        reservation = Reservation.objects.filter(order=order).first()
        if reservation is None:
            return ReservationService.create_reservation(
                order.user, table, reservation_date, order=order, status=Reservation.Status.CONFIRMED
            )

        clash = (
            Reservation.objects.filter(table=table, reservation_date=reservation_date)
            .exclude(status=Reservation.Status.CANCELLED)
            .exclude(pk=reservation.pk)
            .exists()
        )
        if clash:
            return ServiceResult.fail(ErrorKind.CONFLICT, SLOT_TAKEN_MESSAGE)

        reservation.table = table
        reservation.reservation_date = reservation_date
        reservation.status = Reservation.Status.CONFIRMED
        try:
            with transaction.atomic():
                reservation.save(update_fields=["table", "reservation_date", "status", "updated_at"])
        except IntegrityError:
            reservation.refresh_from_db()
            return ServiceResult.fail(ErrorKind.CONFLICT, SLOT_TAKEN_MESSAGE)

        logger.info(
            f"Reservation {reservation.pk} moved to table {table.number} at {reservation_date.isoformat()} "
            f"for order {order.pk}"
        )
        return ServiceResult.ok(reservation, message="Reservation updated successfully")
