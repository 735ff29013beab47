import dataclasses
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from vocabloop.application.pools import SessionMix, mix_for_counts
from vocabloop.application.scheduler import (
    apply_schedule,
    calculate_schedule,
    format_interval,
    get_interval_previews,
)
from vocabloop.consts import VERSION
from vocabloop.domain.clock import now_ms
from vocabloop.domain.constants import (
    DEFAULT_WEIGHT_DUE,
    DEFAULT_WEIGHT_NEW,
    DEFAULT_WEIGHT_WEAK_TAG,
    INITIAL_EASE,
)
from vocabloop.domain.exceptions import VocabloopError
from vocabloop.domain.models import Card, Grade, SessionWeights

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("vocabloop.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"vocabloop server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("vocabloop server shutting down...")


app = FastAPI(
    title="vocabloop Server",
    description="Stateless scheduling and session planning for vocabulary flashcards.",
    version=VERSION,
    lifespan=lifespan,
)


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


class CardModel(BaseModel):
    """Wire shape of a card."""

    id: str
    front: str = ""
    back: str = ""
    tags: list[str] = Field(default_factory=list)
    notes: str | None = None
    example: str | None = None
    ease: float = INITIAL_EASE
    interval_days: int = 0
    reps: int = 0
    due_at: int = 0
    lapses: int = 0
    last_reviewed_at: int | None = None
    created_at: int = 0
    updated_at: int = 0

    def to_domain(self) -> Card:
        return Card(**{**self.model_dump(), "tags": tuple(self.tags)})

    @classmethod
    def from_domain(cls, card: Card) -> "CardModel":
        return cls(**{**dataclasses.asdict(card), "tags": list(card.tags)})


class ScheduleRequest(BaseModel):
    card: CardModel
    grade: str
    now: int | None = None  # epoch ms; server time if omitted


class ScheduleResponse(BaseModel):
    new_ease: float
    new_interval: int
    new_due_at: int
    new_reps: int
    new_lapses: int
    interval_label: str
    card: CardModel


class PreviewRequest(BaseModel):
    card: CardModel
    now: int | None = None


class MixRequest(BaseModel):
    due: int = Field(ge=0)
    weak_tag: int = Field(ge=0)
    new: int = Field(ge=0)
    target: int = Field(ge=0)
    weight_due: float = DEFAULT_WEIGHT_DUE
    weight_weak_tag: float = DEFAULT_WEIGHT_WEAK_TAG
    weight_new: float = DEFAULT_WEIGHT_NEW


class MixResponse(BaseModel):
    due: int
    weak_tag: int
    new: int
    total: int


@app.post("/schedule", response_model=ScheduleResponse)
async def schedule_card(req: ScheduleRequest):
    """
    Compute a card's next SRS state for a grade and return the updated card.
    """
    try:
        grade = Grade.parse(req.grade)
    except VocabloopError as e:
        raise HTTPException(status_code=400, detail=str(e))

    now = req.now if req.now is not None else now_ms()
    card = req.card.to_domain()
    result = calculate_schedule(card, grade, now=now)
    updated = apply_schedule(card, result, now=now)
    logger.debug(f"Scheduled {card.id} ({grade.value}): {result}")

    return ScheduleResponse(
        **dataclasses.asdict(result),
        interval_label=format_interval(result.new_interval),
        card=CardModel.from_domain(updated),
    )


@app.post("/previews")
async def interval_previews(req: PreviewRequest) -> dict[str, str]:
    previews = get_interval_previews(req.card.to_domain(), now=req.now)
    return {grade.value: label for grade, label in previews.items()}


@app.post("/mix", response_model=MixResponse)
async def plan_mix(req: MixRequest):
    """
    Plan a smart-session mix from pool sizes alone.
    """
    try:
        weights = SessionWeights(
            due=req.weight_due, weak_tag=req.weight_weak_tag, new=req.weight_new
        )
    except VocabloopError as e:
        raise HTTPException(status_code=400, detail=str(e))

    available = SessionMix(due=req.due, weak_tag=req.weak_tag, new=req.new)
    mix = mix_for_counts(available, req.target, weights)
    return MixResponse(due=mix.due, weak_tag=mix.weak_tag, new=mix.new, total=mix.total)
