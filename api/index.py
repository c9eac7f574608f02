from typing import Optional

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from mangum import Mangum
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from common.config import Settings, get_settings
from common.errors import LoyaltyError
from common.events import EventBus
from common.logger import get_logger, setup_logger
from common.middleware import RequestTraceMiddleware
from common.phone import normalize_phone
from ledger.aggregator import CouponAggregator
from ledger.service import LedgerService
from ledger.storage import InMemoryStorage, LedgerStorage
from orders.models import OrderRequest
from orders.service import OrderService
from referrals.stats import ReferralService
from stores.matcher import StoreMatcher
from stores.models import DeliveryArea
from withdrawals.service import WithdrawalService

from api.schemas import PlaceOrderRequest, ValidateOrderRequest, WelcomeRequest, WithdrawRequestBody

logger = get_logger(__name__)


class Services:
    """Everything the routes need, wired to one storage and event bus."""

    def __init__(self, storage: LedgerStorage, settings: Settings, events: EventBus):
        self.storage = storage
        self.events = events
        self.ledger = LedgerService(storage, settings, events)
        self.aggregator = CouponAggregator(storage)
        self.referrals = ReferralService(storage, settings)
        self.orders = OrderService(storage, self.ledger, settings, events)
        self.matcher = StoreMatcher(storage, settings)
        self.withdrawals = WithdrawalService(storage, self.ledger, settings, events)


def build_storage(settings: Settings) -> LedgerStorage:
    if settings.DATABASE_URL:
        from ledger.sql_storage import SqlStorage

        return SqlStorage.from_url(settings.DATABASE_URL, echo=settings.DEBUG, seed=True)
    return InMemoryStorage()


def get_services(request: Request) -> Services:
    return request.app.state.services


def _error(e: LoyaltyError, **body) -> JSONResponse:
    return JSONResponse(status_code=e.status_code, content={**body, "code": e.code})


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{field}: {first.get('msg', 'invalid')}" if field else first.get("msg", "Invalid request")


def create_app(
    storage: Optional[LedgerStorage] = None,
    settings: Optional[Settings] = None,
    events: Optional[EventBus] = None,
) -> FastAPI:
    settings = settings or get_settings()
    setup_logger(level=settings.LOG_LEVEL)

    app = FastAPI(
        title="Flower Ledger API",
        description="Points ledger, referral rewards and store routing for flower delivery orders",
        version="1.0.0",
        root_path=settings.API_ROOT_PATH,
    )

    app.add_middleware(RequestTraceMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.services = Services(
        storage if storage is not None else build_storage(settings),
        settings,
        events or EventBus(),
    )

    @app.exception_handler(LoyaltyError)
    async def loyalty_error_handler(request: Request, exc: LoyaltyError) -> JSONResponse:
        logger.info("Request rejected: %s", exc.message, extra={"code": exc.code, "path": request.url.path})
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message, **exc.to_dict()})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        # Malformed orders get the same body as rejected ones
        path = getattr(request.scope.get("route"), "path", request.url.path)
        if request.method == "POST" and path == "/orders":
            return JSONResponse(
                status_code=422,
                content={"success": False, "message": _validation_message(exc), "code": "invalid_request"},
            )
        return await request_validation_exception_handler(request, exc)

    @app.get("/health", tags=["System"])
    def health_check():
        return {"status": "healthy", "service": settings.SERVICE_NAME}

    # -------- coupons --------

    @app.get("/coupons/available", tags=["Coupons"])
    def available_coupons(phone: str = Query(...), services: Services = Depends(get_services)):
        balance = services.aggregator.get_balance(normalize_phone(phone))
        return {
            "coupons": [c.model_dump(mode="json") for c in balance.coupons],
            "totalPoints": balance.available,
            "count": balance.count,
            "breakdown": balance.breakdown.model_dump(),
        }

    @app.get("/coupons/history", tags=["Coupons"])
    def coupon_history(
        phone: str = Query(...),
        limit: int = Query(default=50, ge=1, le=200),
        offset: int = Query(default=0, ge=0),
        services: Services = Depends(get_services),
    ):
        return services.ledger.history(phone, limit, offset).model_dump(mode="json")

    @app.post("/coupons/welcome", status_code=status.HTTP_201_CREATED, tags=["Coupons"])
    def welcome_coupon(body: WelcomeRequest, services: Services = Depends(get_services)):
        return services.ledger.grant_welcome(body.phone).model_dump(mode="json")

    # -------- referrals --------

    @app.get("/referrals/stats", tags=["Referrals"])
    def referral_stats(phone: str = Query(...), services: Services = Depends(get_services)):
        stats = services.referrals.get_stats(phone)
        return {"stats": stats.model_dump(mode="json", by_alias=True)}

    @app.get("/referrals/history", tags=["Referrals"])
    def referral_history(phone: str = Query(...), services: Services = Depends(get_services)):
        history = services.referrals.get_history(phone)
        return {"referrals": [item.model_dump(mode="json", by_alias=True) for item in history.referrals]}

    # -------- orders --------

    @app.post("/orders/validate", tags=["Orders"])
    def validate_order(body: ValidateOrderRequest, services: Services = Depends(get_services)):
        try:
            result = services.orders.validate(
                body.product_id,
                body.quantity,
                body.customer_phone,
                body.points_to_use,
                body.referrer_phone,
            )
        except LoyaltyError as e:
            return _error(e, **e.to_dict(), valid=False, error=e.message)
        return {
            "valid": result.valid,
            "finalAmount": result.final_amount,
            "baseAmount": result.base_amount,
            "discountAmount": result.discount_amount,
            "pointsVerified": result.points_verified,
        }

    @app.post("/orders", tags=["Orders"])
    def place_order(body: PlaceOrderRequest, services: Services = Depends(get_services)):
        order = OrderRequest(**body.model_dump(exclude={"transaction_id", "discount_amount"}))
        try:
            confirmation = services.orders.place_order(
                order, body.transaction_id, claimed_discount=body.discount_amount
            )
        except LoyaltyError as e:
            return _error(e, success=False, message=e.message)
        return {
            "success": True,
            "orderNumber": confirmation.order_number,
            "orderId": str(confirmation.order_id),
            "pointsEarned": confirmation.points_earned,
            "totalAmount": confirmation.total_amount,
            "discountAmount": confirmation.discount_amount,
        }

    # -------- stores --------

    @app.get("/stores/search", tags=["Stores"])
    def search_stores(
        sido: str = Query(..., min_length=1),
        sigungu: str = Query(default=""),
        product_type: Optional[str] = Query(default=None, alias="productType"),
        base_price: Optional[int] = Query(default=None, gt=0, alias="basePrice"),
        order_amount: Optional[int] = Query(default=None, ge=0, alias="orderAmount"),
        exclude_store_id: Optional[str] = Query(default=None, alias="excludeStoreId"),
        services: Services = Depends(get_services),
    ):
        result = services.matcher.match(
            DeliveryArea(sido=sido, sigungu=sigungu),
            product_type=product_type,
            base_price=base_price,
            exclude_store_id=exclude_store_id,
            order_amount=order_amount,
        )
        return result.model_dump(mode="json")

    # -------- withdrawals --------

    @app.get("/withdraw", tags=["Withdrawals"])
    def withdrawable(phone: str = Query(...), services: Services = Depends(get_services)):
        amount = services.withdrawals.get_withdrawable(phone)
        return {
            "totalPoints": amount.total_points,
            "withdrawableAmount": amount.withdrawable_amount,
            "canWithdraw": amount.can_withdraw,
        }

    @app.post("/withdraw", status_code=status.HTTP_201_CREATED, tags=["Withdrawals"])
    def request_withdrawal(body: WithdrawRequestBody, services: Services = Depends(get_services)):
        try:
            withdrawal, remaining = services.withdrawals.request_withdrawal(
                body.phone, body.amount, body.bank_info.to_bank_info()
            )
        except LoyaltyError as e:
            return _error(e, **e.to_dict(), error=e.message)
        return {
            "success": True,
            "withdrawalId": str(withdrawal.id),
            "message": f"Withdrawal of {withdrawal.amount:,} won requested",
            "remainingPoints": remaining,
        }

    return app


app = create_app()

handler = Mangum(app)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
