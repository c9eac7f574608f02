import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from uuid import UUID, uuid4

from common.config import Settings, get_settings
from common.events import EventBus, ledger_changed
from common.logger import get_logger
from common.phone import normalize_phone

from .aggregator import summarize
from .errors import AlreadyUsedError, DuplicateCodeError, EntryNotFoundError, ExpiredError
from .models import LedgerEntry, LedgerEntryInput, LedgerHistoryResponse, OriginType
from .storage import InMemoryStorage, LedgerStorage

logger = get_logger(__name__)

MAX_CODE_ATTEMPTS = 5

_BASE36 = string.digits + string.ascii_uppercase


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_code(origin_type: OriginType, now: datetime) -> str:
    """CP/WC prefix, base36 millisecond timestamp, random suffix."""
    prefix = "WC" if origin_type == OriginType.WELCOME else "CP"
    stamp = _base36(int(now.timestamp() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(4))
    return f"{prefix}{stamp}{suffix}"


class LedgerService:
    def __init__(
        self,
        storage: Optional[LedgerStorage] = None,
        settings: Optional[Settings] = None,
        events: Optional[EventBus] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.storage = storage or InMemoryStorage()
        self.settings = settings or get_settings()
        self.events = events
        self.clock = clock or utc_now
        self.code_factory = generate_code

    def grant(
        self, request: LedgerEntryInput, now: Optional[datetime] = None, notify: bool = True
    ) -> LedgerEntry:
        """Append a new unused entry expiring LEDGER_EXPIRY_DAYS after ``now``."""
        now = now or self.clock()
        phone = normalize_phone(request.customer_phone)

        for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
            entry = LedgerEntry(
                id=uuid4(),
                customer_phone=phone,
                code=self.code_factory(request.origin_type, now),
                amount=request.amount,
                origin_type=request.origin_type,
                created_at=now,
                expires_at=now + timedelta(days=self.settings.LEDGER_EXPIRY_DAYS),
                source_order_id=request.source_order_id,
            )
            try:
                with self.storage.transaction():
                    self.storage.insert_entry(entry)
                break
            except DuplicateCodeError:
                logger.warning(
                    "Coupon code collision, regenerating",
                    extra={"phone": phone, "code": entry.code},
                )
                if attempt == MAX_CODE_ATTEMPTS:
                    raise

        logger.info(
            "Granted %s entry", entry.origin_type.value,
            extra={"phone": phone, "amount": entry.amount, "entry_id": str(entry.id)},
        )
        if notify:
            ledger_changed(self.events, [phone], "grant")
        return entry

    def consume(
        self,
        entry_id: UUID,
        order_id: UUID,
        now: Optional[datetime] = None,
        notify: bool = True,
    ) -> LedgerEntry:
        """Mark an entry used by ``order_id``; exactly one concurrent caller wins."""
        now = now or self.clock()
        with self.storage.transaction():
            entry = self.storage.get_entry(entry_id)
            if entry is None:
                raise EntryNotFoundError(f"Coupon {entry_id} not found")
            if entry.is_used:
                raise AlreadyUsedError()
            if entry.is_expired(now):
                raise ExpiredError()
            if not self.storage.mark_entry_used(entry_id, order_id, now):
                raise AlreadyUsedError()
            consumed = self.storage.get_entry(entry_id)

        logger.info(
            "Consumed entry",
            extra={
                "phone": consumed.customer_phone,
                "amount": consumed.amount,
                "entry_id": str(entry_id),
                "order_id": str(order_id),
            },
        )
        if notify:
            ledger_changed(self.events, [consumed.customer_phone], "consume")
        return consumed

    def list_by_customer(self, customer_phone: str) -> list[LedgerEntry]:
        return self.storage.list_entries(normalize_phone(customer_phone))

    def grant_welcome(self, customer_phone: str, now: Optional[datetime] = None) -> LedgerEntry:
        """Welcome bonus, granted once per phone; later calls return the first grant."""
        now = now or self.clock()
        phone = normalize_phone(customer_phone)
        with self.storage.transaction():
            for entry in self.storage.list_entries(phone, for_update=True):
                if entry.origin_type == OriginType.WELCOME:
                    logger.info("Welcome bonus already granted", extra={"phone": phone})
                    return entry
            entry = self.grant(
                LedgerEntryInput(
                    customer_phone=phone,
                    amount=self.settings.WELCOME_POINTS,
                    origin_type=OriginType.WELCOME,
                ),
                now=now,
                notify=False,
            )
        ledger_changed(self.events, [phone], "welcome")
        return entry

    def history(
        self, customer_phone: str, limit: int = 50, offset: int = 0, now: Optional[datetime] = None
    ) -> LedgerHistoryResponse:
        phone = normalize_phone(customer_phone)
        all_entries = self.storage.list_entries(phone)
        balance = summarize(phone, all_entries, now or self.clock())

        return LedgerHistoryResponse(
            customer_phone=phone,
            entries=all_entries[offset:offset + limit],
            total_count=len(all_entries),
            available_balance=balance.available,
        )
