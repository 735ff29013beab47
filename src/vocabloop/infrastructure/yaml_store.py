"""
YAML Deck Repository: Infrastructure adapter for a single deck file.

Implements DeckStore (cards plus review history) over one YAML document:

    cards:
      - id: hola
        front: hola
        back: hello
        tags: [greetings]
        ease: 2.5
        ...
    reviews:
      - id: rev_...
        card_id: hola
        grade: good
        ...

Every write rewrites the whole file atomically. ``save_review`` stores a card
update and its review entry in one such write.
"""

import asyncio
import dataclasses
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml  # type: ignore
import yaml.constructor

from vocabloop.domain.exceptions import CardNotFound, DeckFormatError, InvalidGrade
from vocabloop.domain.models import Card, Grade, ReviewLog
from vocabloop.domain.ports import DeckStore

logger = logging.getLogger(__name__)

_CARD_FIELDS = {f.name for f in dataclasses.fields(Card)}
_REVIEW_FIELDS = {f.name for f in dataclasses.fields(ReviewLog)}


class UniqueKeyLoader(yaml.SafeLoader):
    """Custom YAML loader that forbids duplicate keys."""

    def construct_mapping(self, node, deep=False):
        mapping = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in mapping:
                raise yaml.constructor.ConstructorError(
                    None, None, f"found duplicate key '{key}'", key_node.start_mark
                )
            mapping.add(key)
        return super().construct_mapping(node, deep)


def card_from_dict(data: dict[str, Any]) -> Card:
    if "id" not in data:
        raise DeckFormatError(f"Card entry without id: {data!r}")
    values = {k: v for k, v in data.items() if k in _CARD_FIELDS}
    values["id"] = str(values["id"])
    values["tags"] = tuple(str(t) for t in (values.get("tags") or ()))
    return Card(**values)


def card_to_dict(card: Card) -> dict[str, Any]:
    data = dataclasses.asdict(card)
    data["tags"] = list(card.tags)
    return {k: v for k, v in data.items() if v is not None}


def review_from_dict(data: dict[str, Any]) -> ReviewLog:
    missing = _REVIEW_FIELDS - data.keys()
    if missing:
        raise DeckFormatError(f"Review entry missing {sorted(missing)}: {data!r}")
    values = {k: data[k] for k in _REVIEW_FIELDS}
    values["card_id"] = str(values["card_id"])
    try:
        values["grade"] = Grade.parse(values["grade"])
    except InvalidGrade as e:
        raise DeckFormatError(str(e)) from e
    return ReviewLog(**values)


def review_to_dict(log: ReviewLog) -> dict[str, Any]:
    data = dataclasses.asdict(log)
    data["grade"] = log.grade.value
    return data


class YamlDeckRepository(DeckStore):
    """
    Stores a deck and its review history in one YAML file.

    The file is read lazily on first access and cached; writes go through a
    lock so interleaved saves from one event loop cannot lose updates. A
    failed write leaves both the file and the cache as they were.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._cards: dict[str, Card] | None = None
        self._reviews: list[ReviewLog] = []
        self._lock = asyncio.Lock()

    async def load_cards(self) -> list[Card]:
        self._ensure_loaded()
        return list(self._cards.values())

    async def get_card(self, card_id: str) -> Card:
        self._ensure_loaded()
        try:
            return self._cards[card_id]
        except KeyError:
            raise CardNotFound(card_id) from None

    async def save_card(self, card: Card) -> None:
        async with self._lock:
            self._ensure_loaded()
            self._commit(cards={**self._cards, card.id: card})

    async def load_reviews(self) -> list[ReviewLog]:
        self._ensure_loaded()
        return sorted(self._reviews, key=lambda r: r.reviewed_at)

    async def append_review(self, log: ReviewLog) -> None:
        async with self._lock:
            self._ensure_loaded()
            self._commit(reviews=[*self._reviews, log])

    async def save_review(self, card: Card, log: ReviewLog) -> None:
        async with self._lock:
            self._ensure_loaded()
            self._commit(cards={**self._cards, card.id: card}, reviews=[*self._reviews, log])

    def _ensure_loaded(self) -> None:
        if self._cards is not None:
            return

        if not self.path.exists():
            logger.info("Deck file %s does not exist yet; starting empty", self.path)
            self._cards = {}
            self._reviews = []
            return

        try:
            raw = yaml.load(self.path.read_text(encoding="utf-8"), Loader=UniqueKeyLoader) or {}
        except yaml.YAMLError as e:
            raise DeckFormatError(f"Invalid YAML in {self.path}: {e}") from e

        if not isinstance(raw, dict):
            raise DeckFormatError(f"{self.path}: top level must be a mapping")

        cards: dict[str, Card] = {}
        for entry in raw.get("cards") or []:
            if not isinstance(entry, dict):
                logger.warning("Skipping non-mapping card entry in %s: %r", self.path, entry)
                continue
            card = card_from_dict(entry)
            if card.id in cards:
                raise DeckFormatError(f"{self.path}: duplicate card id {card.id!r}")
            cards[card.id] = card

        reviews: list[ReviewLog] = []
        for entry in raw.get("reviews") or []:
            if not isinstance(entry, dict):
                logger.warning("Skipping non-mapping review entry in %s: %r", self.path, entry)
                continue
            reviews.append(review_from_dict(entry))

        self._cards = cards
        self._reviews = reviews
        logger.debug("Loaded %d cards and %d reviews from %s", len(cards), len(reviews), self.path)

    def _commit(
        self,
        cards: dict[str, Card] | None = None,
        reviews: list[ReviewLog] | None = None,
    ) -> None:
        cards = self._cards if cards is None else cards
        reviews = self._reviews if reviews is None else reviews
        self._write(cards, reviews)
        self._cards = cards
        self._reviews = reviews

    def _write(self, cards: dict[str, Card], reviews: list[ReviewLog]) -> None:
        document = {
            "cards": [card_to_dict(c) for c in cards.values()],
            "reviews": [review_to_dict(r) for r in reviews],
        }
        text = yaml.safe_dump(
            document,
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
        )

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
