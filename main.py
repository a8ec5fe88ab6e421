import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from access import AccessGate, AccessToken, AuthFailure
from availability import MAX_YEAR, MIN_YEAR, CalendarCell, ViewMode
from bookings import Booking, BookingDraft, ConflictError, DayBookingSet, EmptyName, UnknownSlot
from config import Settings, load_settings
from database import create_engine, init_db, session_factory
from editor import BookingEditor
from store import BookingStore, PersistenceError

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


# Pydantic Schemas for Request/Response
class PinRequest(BaseModel):
    pin: str


class BookingCreate(BaseModel):
    name: str
    slot: str


class BookingEntry(BaseModel):
    name: str
    slot: str
    id: Optional[str] = None


class BookingOut(BaseModel):
    id: str
    name: str
    slot: str


class DayOut(BaseModel):
    date: date
    status: str
    bookings: List[BookingOut]


class CellOut(BaseModel):
    date: date
    in_month: bool
    status: str
    booking_count: int
    is_today: bool
    is_past: bool
    summary: Optional[str]
    interactive: bool
    editable: bool


class MonthRef(BaseModel):
    year: int
    month: int


class MonthOut(BaseModel):
    year: int
    month: int
    title: str
    view: ViewMode
    prev: Optional[MonthRef]
    next: Optional[MonthRef]
    cells: List[CellOut]


class SlotsOut(BaseModel):
    time_slots: List[str]
    all_day_slot: str
    max_events: int
    unique_slots: bool


def booking_out(booking: Booking) -> BookingOut:
    return BookingOut(id=booking.id, name=booking.name, slot=booking.slot)


def day_out(day_set: DayBookingSet) -> DayOut:
    return DayOut(
        date=day_set.day,
        status=day_set.status().value,
        bookings=[booking_out(b) for b in day_set],
    )


def cell_out(cell: CalendarCell) -> CellOut:
    return CellOut(
        date=cell.date,
        in_month=cell.in_month,
        status=cell.status.value,
        booking_count=cell.booking_count,
        is_today=cell.is_today,
        is_past=cell.is_past,
        summary=cell.summary,
        interactive=cell.interactive,
        editable=cell.editable,
    )


def month_ref(ref: Optional[tuple]) -> Optional[MonthRef]:
    if ref is None:
        return None
    return MonthRef(year=ref[0], month=ref[1])


def error_detail(error: Exception) -> dict:
    return {"error": getattr(error, "code", type(error).__name__), "message": str(error)}


def conflict_http_error(error: ConflictError) -> HTTPException:
    # Bad input is a 400; a day that cannot take the booking is a 409.
    if isinstance(error, (EmptyName, UnknownSlot)):
        code = status.HTTP_400_BAD_REQUEST
    else:
        code = status.HTTP_409_CONFLICT
    return HTTPException(status_code=code, detail=error_detail(error))


def persistence_http_error(error: PersistenceError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={"error": "PersistenceError", "message": f"{error} Please retry."},
    )


def auth_http_error(error: AuthFailure) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": "AuthFailure", "message": str(error)},
    )


def get_editor(request: Request) -> BookingEditor:
    return request.app.state.editor


def get_gate(request: Request) -> AccessGate:
    return request.app.state.gate


def get_token(x_access_token: Optional[str] = Header(default=None)) -> Optional[AccessToken]:
    return AccessToken(x_access_token) if x_access_token else None


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = create_engine(settings.database_url)
        try:
            await init_db(engine)
            store = BookingStore(session_factory(engine))
            editor = BookingEditor(store, app.state.gate, settings.rules)
            # The whole table is loaded before the first request is served.
            await editor.load()
            app.state.editor = editor
            logger.info("Booking calendar ready")
            yield
        finally:
            await engine.dispose()

    app = FastAPI(title="Venue Booking Calendar", lifespan=lifespan)
    app.state.settings = settings
    app.state.gate = AccessGate(settings.admin_pin)

    # --- Access gate ---
    @app.post("/api/verify-pin")
    async def verify_pin(body: PinRequest, gate: AccessGate = Depends(get_gate)):
        try:
            token = gate.verify(body.pin)
        except AuthFailure:
            return JSONResponse({"success": False}, status_code=status.HTTP_401_UNAUTHORIZED)
        return {"success": True, "token": token.value}

    @app.post("/api/logout")
    async def logout(
        gate: AccessGate = Depends(get_gate),
        token: Optional[AccessToken] = Depends(get_token),
    ):
        gate.revoke(token)
        return {"success": True}

    # --- Availability ---
    @app.get("/api/slots", response_model=SlotsOut)
    async def get_slots():
        rules = settings.rules
        return SlotsOut(
            time_slots=list(rules.time_slots),
            all_day_slot=rules.all_day_slot,
            max_events=rules.max_events,
            unique_slots=rules.unique_slots,
        )

    @app.get("/api/calendar", response_model=MonthOut)
    async def get_calendar(
        year: Optional[int] = Query(default=None, ge=MIN_YEAR, le=MAX_YEAR),
        month: Optional[int] = Query(default=None, ge=1, le=12),
        view: ViewMode = ViewMode.PUBLIC,
        today: Optional[date] = None,
        editor: BookingEditor = Depends(get_editor),
        gate: AccessGate = Depends(get_gate),
        token: Optional[AccessToken] = Depends(get_token),
    ):
        if view is ViewMode.MANAGEMENT:
            try:
                gate.require(token)
            except AuthFailure as e:
                raise auth_http_error(e)

        if today is None:
            today = date.today()
        if year is None:
            year = today.year
        if month is None:
            month = today.month

        try:
            month_view = editor.month(year, month, today=today, mode=view)
        except ValueError as e:
            # Only reachable when the year comes from an out-of-range ``today``.
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail={"error": "InvalidMonth", "message": str(e)},
            )
        return MonthOut(
            year=year,
            month=month,
            title=month_view.month_title,
            view=view,
            prev=month_ref(month_view.previous_month),
            next=month_ref(month_view.next_month),
            cells=[cell_out(c) for c in month_view],
        )

    @app.get("/api/days/{day}", response_model=DayOut)
    async def get_day(day: date, editor: BookingEditor = Depends(get_editor)):
        return day_out(editor.day(day))

    # --- Management ---
    @app.post("/api/days/{day}/bookings", status_code=status.HTTP_201_CREATED, response_model=BookingOut)
    async def add_booking(
        day: date,
        booking_data: BookingCreate,
        editor: BookingEditor = Depends(get_editor),
        token: Optional[AccessToken] = Depends(get_token),
    ):
        try:
            booking = await editor.add_booking(token, day, booking_data.name, booking_data.slot)
        except AuthFailure as e:
            raise auth_http_error(e)
        except ConflictError as e:
            raise conflict_http_error(e)
        except PersistenceError as e:
            raise persistence_http_error(e)
        return booking_out(booking)

    @app.delete("/api/days/{day}/bookings/{booking_id}", response_model=DayOut)
    async def remove_booking(
        day: date,
        booking_id: str,
        editor: BookingEditor = Depends(get_editor),
        token: Optional[AccessToken] = Depends(get_token),
    ):
        try:
            day_set = await editor.remove_booking(token, day, booking_id)
        except AuthFailure as e:
            raise auth_http_error(e)
        except PersistenceError as e:
            raise persistence_http_error(e)
        return day_out(day_set)

    @app.put("/api/days/{day}/bookings", response_model=DayOut)
    async def commit_day(
        day: date,
        entries: List[BookingEntry],
        editor: BookingEditor = Depends(get_editor),
        token: Optional[AccessToken] = Depends(get_token),
    ):
        drafts = [BookingDraft(name=e.name, slot=e.slot, id=e.id) for e in entries]
        try:
            day_set = await editor.commit_day(token, day, drafts)
        except AuthFailure as e:
            raise auth_http_error(e)
        except ConflictError as e:
            raise conflict_http_error(e)
        except PersistenceError as e:
            raise persistence_http_error(e)
        return day_out(day_set)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app


if __name__ == "__main__":
    import uvicorn

    settings = load_settings()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=8000)
