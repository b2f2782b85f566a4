import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth import authenticate, build_verifier, issue_token, require_role
from config import Settings, setup_logging
from database import (
    Database,
    connect,
    delete_result,
    get_db,
    insert_result,
    serialize,
    to_obj_id,
    update_result,
)
from payments import PaymentGatewayError, StripeGateway, get_gateway, to_minor_units
from schemas import ASSIGNED, Email, Booking as BookingSchema, Payment as PaymentSchema
from schemas import Service as ServiceSchema, User as UserSchema

logger = logging.getLogger(__name__)

TOP_DECORATORS_LIMIT = 6

router = APIRouter()

admin_only = require_role("admin")
decorator_or_admin = require_role("decorator", "admin")


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


# Request Models
class StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class TokenClaims(BaseModel):
    # any claims object is signed as is
    model_config = ConfigDict(extra="allow")


class UserCreate(StrictModel):
    email: Email
    name: Optional[str] = Field(None, max_length=120)
    photoURL: Optional[str] = None
    phone: Optional[str] = None


class ServiceCreate(StrictModel):
    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    category: Optional[str] = None
    price: float = Field(..., ge=0)
    unit: Optional[str] = None
    image: Optional[str] = None


class ServiceUpdate(StrictModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    unit: Optional[str] = None
    image: Optional[str] = None


class BookingCreate(StrictModel):
    userEmail: Email
    userName: Optional[str] = None
    serviceId: Optional[str] = None
    serviceName: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    date: Optional[str] = None
    location: Optional[str] = None
    # accepted but always replaced with "Assigned"
    status: Optional[str] = None


class StatusUpdate(StrictModel):
    status: str


class PaymentIntentRequest(StrictModel):
    price: float = Field(..., gt=0, allow_inf_nan=False)


class PaymentCreate(StrictModel):
    email: Email
    amount: float = Field(..., ge=0)
    transactionId: Optional[str] = None
    bookingId: Optional[str] = None
    serviceName: Optional[str] = None


# Auth Routes
@router.post("/jwt")
def create_token(payload: TokenClaims, settings: Settings = Depends(get_settings)):
    return {"token": issue_token(payload.model_dump(), settings)}


# User Routes
@router.post("/users")
def register_user(payload: UserCreate, db: Database = Depends(get_db)):
    # Not atomic: two concurrent registrations for one email can both insert.
    if db.users.find_one({"email": payload.email}):
        return {"message": "User exists"}
    doc = UserSchema(**payload.model_dump(exclude_none=True)).model_dump(exclude_none=True)
    return insert_result(db.users.insert_one(doc))


@router.get("/users/role/{email}")
def get_user_role(email: str, claims=Depends(authenticate), db: Database = Depends(get_db)):
    return {"role": db.role_of(email)}


# Service Routes
@router.get("/services")
def list_services(db: Database = Depends(get_db)):
    return [serialize(s) for s in db.services.find()]


@router.get("/services/{service_id}")
def get_service(service_id: str, db: Database = Depends(get_db)):
    return serialize(db.services.find_one({"_id": to_obj_id(service_id)}))


# Admin Routes
@router.post("/admin/services")
def create_service(payload: ServiceCreate, admin=Depends(admin_only), db: Database = Depends(get_db)):
    doc = ServiceSchema(**payload.model_dump(exclude_none=True)).model_dump(exclude_none=True)
    return insert_result(db.services.insert_one(doc))


@router.put("/admin/services/{service_id}")
def update_service(
    service_id: str,
    payload: ServiceUpdate,
    admin=Depends(admin_only),
    db: Database = Depends(get_db),
):
    oid = to_obj_id(service_id)
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    return update_result(db.services.update_one({"_id": oid}, {"$set": fields}))


@router.delete("/admin/services/{service_id}")
def delete_service(service_id: str, admin=Depends(admin_only), db: Database = Depends(get_db)):
    return delete_result(db.services.delete_one({"_id": to_obj_id(service_id)}))


# Booking Routes
@router.post("/bookings")
def create_booking(payload: BookingCreate, claims=Depends(authenticate), db: Database = Depends(get_db)):
    fields = payload.model_dump(exclude={"status"}, exclude_none=True)
    doc = BookingSchema(**fields, status=ASSIGNED).model_dump(exclude_none=True)
    return insert_result(db.bookings.insert_one(doc))


@router.get("/bookings/user/{email}")
def list_user_bookings(email: str, claims=Depends(authenticate), db: Database = Depends(get_db)):
    return [serialize(b) for b in db.bookings.find({"userEmail": email})]


@router.patch("/decorator/status/{booking_id}")
def update_booking_status(
    booking_id: str,
    payload: StatusUpdate,
    decorator=Depends(decorator_or_admin),
    db: Database = Depends(get_db),
):
    oid = to_obj_id(booking_id)
    return update_result(db.bookings.update_one({"_id": oid}, {"$set": {"status": payload.status}}))


# Decorator Routes
@router.get("/decorators/top")
def top_decorators(db: Database = Depends(get_db)):
    cursor = db.users.find({"role": "decorator"}).limit(TOP_DECORATORS_LIMIT)
    return [serialize(u) for u in cursor]


# Payment Routes
@router.post("/create-payment-intent")
def create_payment_intent(payload: PaymentIntentRequest, claims=Depends(authenticate), gateway=Depends(get_gateway)):
    return {"clientSecret": gateway.create_payment_intent(to_minor_units(payload.price))}


@router.post("/payments")
def record_payment(payload: PaymentCreate, claims=Depends(authenticate), db: Database = Depends(get_db)):
    # Stored as reported by the client; not reconciled with Stripe.
    doc = PaymentSchema(**payload.model_dump(exclude_none=True)).model_dump(exclude_none=True)
    return insert_result(db.payments.insert_one(doc))


@router.get("/payments/user/{email}")
def list_user_payments(email: str, claims=Depends(authenticate), db: Database = Depends(get_db)):
    return [serialize(p) for p in db.payments.find({"email": email})]


# Utility endpoints
@router.get("/", response_class=PlainTextResponse)
def root():
    return "StyleDecor Server Running"


@router.get("/test")
def test_database(request: Request):
    db: Optional[Database] = getattr(request.app.state, "db", None)
    response = {"backend": "ok", "database": "missing", "database_name": None, "collections": []}
    if db is None:
        return response
    try:
        response["database_name"] = db.name
        response["collections"] = db.db.list_collection_names()[:10]
        response["database"] = "ok"
    except Exception as e:
        response["database"] = f"error: {str(e)[:80]}"
    return response


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse({"message": exc.detail}, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            {"message": "Invalid request body", "errors": jsonable_encoder(exc.errors())},
            status_code=422,
        )

    @app.exception_handler(PyMongoError)
    async def database_error(request: Request, exc: PyMongoError):
        logger.exception("Database error on %s %s", request.method, request.url.path)
        return JSONResponse({"message": "Database error"}, status_code=500)

    @app.exception_handler(PaymentGatewayError)
    async def gateway_error(request: Request, exc: PaymentGatewayError):
        return JSONResponse({"message": "Payment gateway error"}, status_code=502)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse({"message": "Internal Server Error"}, status_code=500)


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    verifier=None,
    gateway=None,
) -> FastAPI:
    """Build the StyleDecor API.

    ``database``, ``verifier`` and ``gateway`` may be injected; whatever is
    missing is created from ``settings``. The database connection and the
    token verifier are set up in the startup hook, so no request is served
    before they exist.
    """
    settings = settings or Settings()
    setup_logging(settings.log_level)

    app = FastAPI(title="StyleDecor API")
    app.state.settings = settings
    app.state.db = database
    app.state.verifier = verifier
    app.state.gateway = gateway or StripeGateway(settings.stripe_secret_key, settings.payment_currency)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(router)

    @app.on_event("startup")
    def startup() -> None:
        if app.state.verifier is None:
            app.state.verifier = build_verifier(settings)
        if app.state.db is None:
            app.state.db = connect(settings)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
