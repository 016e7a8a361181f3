from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.sessions import SessionMiddleware

from . import config
from .checkin import CheckInResult, CheckInService, Outcome
from .errors import MovieNightError, ValidationError
from .helpers import ct_equal, to_iso
from .infra.logs import setup_logging
from .infra.sql import backend_name, make_async_engine
from .listing import ListingService
from .mailer import Notifier, new_notifier
from .model.registration import ensure_schema
from .registration import RegistrationService
from .serial import normalize_serial

logger = logging.getLogger(__name__)


# ----------------------------
# Dependencies (singletons built at startup, see create_app)
# ----------------------------
def registrations(request: Request) -> RegistrationService:
    return request.app.state.registrations


def checkins(request: Request) -> CheckInService:
    return request.app.state.checkins


def listings(request: Request) -> ListingService:
    return request.app.state.listings


# ----------------------------
# Response shapes
# ----------------------------
def checkin_response(result: CheckInResult) -> dict:
    body = {"valid": result.valid, "message": result.message}
    if result.outcome is Outcome.UNKNOWN:
        return body
    body.update({
        "names": ", ".join(result.names),
        "serial": result.serial,
        "hasVip": result.has_vip,
    })
    if result.outcome is Outcome.ALREADY_REDEEMED:
        body["alreadyUsed"] = True
        body["checkedInAt"] = to_iso(result.checked_in_at)
    return body


def create_app(
    database_url: Optional[str] = None,
    notifier: Optional[Notifier] = None,
    static_dir: Optional[str] = None,
) -> FastAPI:
    database_url = database_url or config.DATABASE_URL
    static_dir = config.STATIC_DIR if static_dir is None else static_dir

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        mail = "enabled" if (notifier or config.RESEND_API_KEY) else "disabled"
        print('\n')
        print('=' * 50)
        print('Movie Night is starting up...')
        print(f'   - Store: {backend_name(database_url)}')
        print(f'   - Email: {mail}')
        print('=' * 50)
        print('\n')

        # create tables, then run pending migrations
        engine, sessions, _, gated = make_async_engine(database_url)
        async with engine.begin() as conn:
            await ensure_schema(conn)
        app.state.engine = engine

        app.state.http = httpx.AsyncClient(
            timeout=config.MAIL_TIMEOUT,
            limits=httpx.Limits(max_connections=32),
        )

        app.state.notifier = notifier or new_notifier(app.state.http)
        app.state.registrations = RegistrationService(
            sessions=sessions, gated=gated, notifier=app.state.notifier,
        )
        app.state.checkins = CheckInService(sessions=sessions, gated=gated)
        app.state.listings = ListingService(sessions=sessions, gated=gated)

        try:
            yield
        finally:
            logger.info("shutting down")
            await app.state.http.aclose()
            await engine.dispose()

    app = FastAPI(
        title="Movie Night",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    app.add_middleware(SessionMiddleware, secret_key=config.SESSION_SECRET)

    # ---
    # errors: always a JSON body with an "error" field
    # ---
    @app.exception_handler(MovieNightError)
    async def _app_error(request: Request, exc: MovieNightError):
        return ORJSONResponse({"error": exc.message},
                              status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception):
        logger.error("unhandled error on %s %s", request.method,
                     request.url.path, exc_info=exc)
        return ORJSONResponse({"error": "Internal error"}, status_code=500)

    @app.exception_handler(RequestValidationError)
    async def _bad_body(request: Request, exc: RequestValidationError):
        return ORJSONResponse({"error": "Request body must be a JSON object"},
                              status_code=400)

    # ----------------------------
    # API: registration
    # ----------------------------
    @app.post("/api/register")
    async def register(
        payload: dict,
        svc: RegistrationService = Depends(registrations),
    ):
        ticket = await svc.register(
            payload.get("email"), payload.get("attendees")
        )
        return {
            "success": True,
            "serial": ticket.serial,
            "qrData": ticket.payload,
            "attendees": [
                {"firstName": a.first_name, "lastName": a.last_name,
                 "vip": a.vip}
                for a in ticket.attendees
            ],
            "emailSent": ticket.email_sent,
        }

    # ----------------------------
    # API: door check-in (manual serial or scanned payload)
    # ----------------------------
    @app.post("/api/checkin")
    async def checkin(
        payload: dict,
        svc: CheckInService = Depends(checkins),
    ):
        serial = payload.get("serial")
        qr_data = payload.get("qrData")
        if isinstance(serial, str) and serial.strip():
            result = await svc.check_in(serial)
        elif isinstance(qr_data, str) and qr_data.strip():
            result = await svc.check_in_payload(qr_data)
        else:
            raise ValidationError("Serial number required")
        return checkin_response(result)

    # ----------------------------
    # API: operator dashboard
    # ----------------------------
    @app.get("/api/attendees")
    async def list_attendees(svc: ListingService = Depends(listings)):
        listing = await svc.list_attendees()
        return {
            "attendees": [
                {
                    "serial": e.serial,
                    "email": e.email,
                    "checked_in": e.checked_in,
                    "checked_in_at": to_iso(e.checked_in_at),
                    "created_at": to_iso(e.created_at),
                    "names": ", ".join(e.names),
                    "has_vip": e.has_vip,
                }
                for e in listing.entries
            ],
            "total": listing.total,
            "checkedIn": listing.checked_in_count,
        }

    @app.delete("/api/attendees/{serial}")
    async def delete_attendee(
        serial: str, svc: ListingService = Depends(listings)
    ):
        await svc.delete(normalize_serial(serial))
        return {"success": True,
                "message": "Registration deleted successfully"}

    # ----------------------------
    # Passphrase screen (cosmetic, the API does not check it)
    # ----------------------------
    @app.get("/api/gate")
    async def gate_status(request: Request):
        return {"unlocked": bool(request.session.get("gate"))}

    @app.post("/api/gate")
    async def gate_unlock(request: Request, payload: dict):
        passphrase = payload.get("passphrase")
        if not isinstance(passphrase, str) or not passphrase.strip():
            raise ValidationError("Please enter the access code")
        if not ct_equal(passphrase.strip().lower(),
                        config.GATE_PASSPHRASE.lower()):
            return ORJSONResponse({"error": "Invalid access code"},
                                  status_code=401)
        request.session["gate"] = True
        return {"success": True}

    @app.delete("/api/gate")
    async def gate_lock(request: Request):
        request.session.clear()
        return {"success": True}

    @app.get("/api/health")
    async def health(request: Request):
        try:
            async with request.app.state.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.error("health check failed: %s", e)
            return ORJSONResponse(
                {"status": "degraded", "database": "unavailable"},
                status_code=503,
            )
        return {"status": "ok", "database": "ok"}

    # built SPA last, so /api/* wins
    if static_dir and os.path.isdir(static_dir):
        app.mount("/", StaticFiles(directory=static_dir, html=True),
                  name="static")

    return app


app = create_app()
