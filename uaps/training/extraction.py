"""
Tasting-Note Extraction.

Turns free-text tasting notes (CellarTracker-style exports) into
``TerrestrialRecord`` objects for the trainer:

- Keyword-based scoring of the six flavor axes (1 / 2 / 3+ hits -> 40 / 60 / 80)
- Aging-years inference, first from vintage and review year, then from
  explicit text ("aged 5 years", "36 months on the lees")
- Vintage parsing from a leading year in the wine name
- Subtype classification (blanc de blancs, blanc de noirs, rose, vintage, blend)
- Optional model-assisted scoring in batches of 20, falling back to keywords

Aging estimates with confidence below 0.75 are discarded before a record
is built.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import date
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from uaps.core.config import EngineConfig
from uaps.core.models import DataSource, FlavorAxis, TerrestrialRecord
from uaps.core.numeric import clamp
from uaps.ensemble.inference import InferenceClient, strip_code_fences
from uaps.ensemble.prompts import build_extraction_prompt
from uaps.exceptions import MalformedResponseError
from uaps.training.trainer import infer_aging_stage

FLAVOR_KEYWORDS: dict[FlavorAxis, tuple[str, ...]] = {
    FlavorAxis.CITRUS: (
        "citrus", "lemon", "lime", "grapefruit", "orange", "mandarin", "yuzu",
        "zesty", "apple", "pear", "peach",
    ),
    FlavorAxis.BRIOCHE: (
        "brioche", "bread", "pastry", "dough", "biscuit", "yeast", "autolysis",
        "lees", "bready", "croissant", "sourdough",
    ),
    FlavorAxis.HONEY: (
        "honey", "beeswax", "acacia", "candied", "apricot", "marmalade", "dried fruit",
    ),
    FlavorAxis.NUTTY: (
        "nutty", "almond", "hazelnut", "walnut", "marzipan", "praline",
    ),
    FlavorAxis.TOAST: (
        "toast", "smoky", "roasted", "coffee", "mocha", "caramel", "toffee",
    ),
    FlavorAxis.OXIDATION: (
        "oxidative", "oxidised", "oxidized", "sherry", "bruised apple", "madeira", "maderized",
    ),
}

_YEAR_PATTERNS = (
    re.compile(r"(\d+(?:\.\d+)?)\s*[-–]?\s*years?\s*(?:old|aged|of\s+age|on\s+(?:the\s+)?lees?|in\s+(?:bottle|cellar))"),
    re.compile(r"aged?\s+(?:for\s+)?(\d+(?:\.\d+)?)\s*years?"),
    re.compile(r"(\d+(?:\.\d+)?)\s*yrs?\s+(?:old|aged)"),
)
_MONTH_PATTERNS = (
    re.compile(r"(\d+)\s*months?\s+(?:on\s+(?:the\s+)?lees?|aged?|in\s+(?:bottle|cellar))"),
    re.compile(r"disgorgement\s+after\s+(\d+)\s*months?"),
    re.compile(r"(\d+)\s*months?\s+(?:of\s+)?(?:aging|ageing|maturation)"),
)
_LEADING_VINTAGE = re.compile(r"^(\d{4})\s")
_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")

MIN_REVIEW_LENGTH = 10
MAX_REVIEW_CHARS = 2000
MAX_AGING_YEARS = 50
# Estimates below this never reach training
AGING_CONFIDENCE_MIN = 0.75
EXTRACTION_BATCH_SIZE = 20


@dataclass(frozen=True)
class AgingYearsEstimate:
    value: float
    confidence: float
    source: str  # "vintage_calc" | "direct_text" | "model"


@dataclass(frozen=True)
class TastingNote:
    """One exported tasting note."""

    wine_name: str
    review_text: str
    wine_type: str = ""
    tasting_date: date | None = None
    score: float | None = None
    category: str = "champagne"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TastingNote:
        score = data.get("score")
        return cls(
            wine_name=data.get("wine_name") or data.get("wineName") or "",
            review_text=data.get("review_text") or data.get("reviewText") or "",
            wine_type=data.get("wine_type") or data.get("wineType") or "",
            tasting_date=parse_note_date(data.get("date") or data.get("tasting_date")),
            score=float(score) if score not in (None, "") else None,
            category=data.get("category") or "champagne",
        )


# =============================================================================
# PARSING HELPERS
# =============================================================================


def parse_note_date(value: str | None) -> date | None:
    """Parse ``M/D/YYYY`` or ISO ``YYYY-MM-DD``; anything else is None."""
    if not value:
        return None
    value = value.strip()
    parts = value.split("/")
    try:
        if len(parts) == 3:
            return date(int(parts[2]), int(parts[0]), int(parts[1]))
        return date.fromisoformat(value)
    except ValueError:
        return None


def extract_vintage(wine_name: str, latest_year: int | None = None) -> int | None:
    """Leading four-digit year of a wine name; None for non-vintage."""
    match = _LEADING_VINTAGE.match(wine_name)
    if not match:
        return None
    year = int(match.group(1))
    latest = latest_year or date.today().year
    return year if 1900 <= year <= latest + 1 else None


def classify_subtype(wine_type: str, wine_name: str, reference_year: int | None = None) -> str:
    text = f"{wine_type} {wine_name}".lower()
    if "rosé" in text or "rose" in text:
        return "rose"
    if "blanc de blancs" in text or "bdb" in text:
        return "blanc_de_blancs"
    if "blanc de noirs" in text or "bdn" in text:
        return "blanc_de_noirs"

    year = reference_year or date.today().year
    vintage = extract_vintage(wine_name, year)
    if vintage and vintage <= year - 5:
        return "vintage"
    return "blend"


# =============================================================================
# FLAVOR & AGE EXTRACTION
# =============================================================================


def extract_flavor_scores(text: str) -> dict[FlavorAxis, float]:
    """Keyword-count flavor scores; axes with no hits are scored 0."""
    lower = text.lower()
    scores: dict[FlavorAxis, float] = {}
    for axis, keywords in FLAVOR_KEYWORDS.items():
        hits = sum(1 for keyword in keywords if keyword in lower)
        if hits >= 3:
            scores[axis] = 80.0
        elif hits == 2:
            scores[axis] = 60.0
        elif hits == 1:
            scores[axis] = 40.0
        else:
            scores[axis] = 0.0
    return scores


def aging_years_from_vintage(vintage: int | None, review_year: int | None) -> AgingYearsEstimate | None:
    """
    Years between vintage and review.

    Very old wines (> 30 years) get lower confidence; gaps beyond 50 years
    or reviews dated before the vintage are rejected.
    """
    if vintage is None or review_year is None:
        return None
    if not 1900 <= vintage <= review_year:
        return None
    years = review_year - vintage
    if years > MAX_AGING_YEARS:
        return None
    return AgingYearsEstimate(value=float(years), confidence=0.70 if years > 30 else 0.92, source="vintage_calc")


def aging_years_from_text(text: str) -> AgingYearsEstimate | None:
    """Explicit aging statements in years or months."""
    lower = text.lower()

    for pattern in _YEAR_PATTERNS:
        match = pattern.search(lower)
        if match:
            value = float(match.group(1))
            if 0 < value <= MAX_AGING_YEARS:
                return AgingYearsEstimate(value=value, confidence=0.88, source="direct_text")

    for pattern in _MONTH_PATTERNS:
        match = pattern.search(lower)
        if match:
            months = int(match.group(1))
            if 0 < months <= 600:
                return AgingYearsEstimate(value=round(months / 12, 1), confidence=0.85, source="direct_text")

    return None


def infer_aging_years(
    text: str,
    vintage: int | None,
    review_year: int | None,
) -> AgingYearsEstimate | None:
    return aging_years_from_vintage(vintage, review_year) or aging_years_from_text(text)



# =============================================================================
# MODEL-ASSISTED EXTRACTION
# =============================================================================


class ExtractedNote(BaseModel):
    """One element of the extraction response array."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    citrus: float | None = None
    brioche: float | None = None
    honey: float | None = None
    nutty: float | None = None
    toast: float | None = None
    oxidation: float | None = None
    aging_years: float | None = Field(default=None, alias="agingYears")
    aging_years_confidence: float | None = Field(default=None, alias="agingYearsConfidence")


_EXTRACTION_ADAPTER = TypeAdapter(list[ExtractedNote])


@dataclass(frozen=True)
class NoteExtraction:
    """Flavor scores and aging estimate for one note, before gating."""

    flavor_scores: dict[FlavorAxis, float]
    aging: AgingYearsEstimate | None


def _review_year(note: TastingNote, reference_year: int) -> int:
    return note.tasting_date.year if note.tasting_date else reference_year


def keyword_extraction(note: TastingNote, reference_year: int | None = None) -> NoteExtraction:
    """Keyword scores plus vintage/text aging inference."""
    year = reference_year or date.today().year
    vintage = extract_vintage(note.wine_name, year)
    return NoteExtraction(
        flavor_scores=extract_flavor_scores(note.review_text),
        aging=infer_aging_years(note.review_text, vintage, _review_year(note, year)),
    )


def parse_extraction_response(text: str, expected: int, model: str | None = None) -> list[ExtractedNote]:
    """Decode the JSON array; raises ``MalformedResponseError`` on any mismatch."""
    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        match = _JSON_ARRAY.search(cleaned)
        if not match:
            raise MalformedResponseError("No JSON array in extraction response", model=model) from None
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise MalformedResponseError(f"Extraction response is not JSON: {e}", model=model) from e
    if not isinstance(data, list):
        raise MalformedResponseError("Extraction response is not an array", model=model)
    if len(data) != expected:
        raise MalformedResponseError(f"Expected {expected} results, got {len(data)}", model=model)
    try:
        return _EXTRACTION_ADAPTER.validate_python(data)
    except ValidationError as e:
        raise MalformedResponseError(f"Extraction failed validation: {e.error_count()} errors", model=model) from e


def _from_model(note: TastingNote, extracted: ExtractedNote, reference_year: int) -> NoteExtraction:
    scores = {}
    for axis in FlavorAxis:
        value = getattr(extracted, axis.value)
        if value is not None:
            scores[axis] = clamp(value)
    # A vintage-based age beats the model's estimate
    vintage = extract_vintage(note.wine_name, reference_year)
    aging = aging_years_from_vintage(vintage, _review_year(note, reference_year))
    if aging is None and extracted.aging_years is not None and 0 < extracted.aging_years <= MAX_AGING_YEARS:
        aging = AgingYearsEstimate(
            value=round(extracted.aging_years, 1),
            confidence=clamp(extracted.aging_years_confidence or 0.0, 0.0, 1.0),
            source="model",
        )
    return NoteExtraction(flavor_scores=scores, aging=aging)


async def _extract_batch(
    batch: list[TastingNote],
    client: InferenceClient,
    models: tuple[str, ...],
    timeout: float,
    reference_year: int,
) -> list[NoteExtraction]:
    prompt = build_extraction_prompt(
        [
            (
                n.wine_name,
                extract_vintage(n.wine_name, reference_year),
                n.tasting_date,
                n.review_text[:MAX_REVIEW_CHARS],
            )
            for n in batch
        ]
    )
    for model in models:
        try:
            text = await client.generate(prompt, model, timeout)
            extracted = parse_extraction_response(text, len(batch), model)
        except Exception as e:
            logger.warning(f"Note extraction with {model} failed, trying next variant: {e}")
            continue
        logger.info(f"Extracted {len(batch)} notes with {model}")
        return [_from_model(n, x, reference_year) for n, x in zip(batch, extracted)]

    logger.warning(f"All model variants failed for {len(batch)} notes; using keyword extraction")
    return [keyword_extraction(n, reference_year) for n in batch]


async def extract_with_inference(
    notes: list[TastingNote],
    client: InferenceClient,
    models: tuple[str, ...],
    timeout: float = 30.0,
    reference_year: int | None = None,
) -> list[NoteExtraction]:
    """
    Score notes with the external model, one batch at a time.

    Variants are tried in order per batch; a batch no variant can handle
    falls back to keyword extraction. Results keep input order.
    """
    year = reference_year or date.today().year
    results: list[NoteExtraction] = []
    for start in range(0, len(notes), EXTRACTION_BATCH_SIZE):
        batch = notes[start:start + EXTRACTION_BATCH_SIZE]
        results.extend(await _extract_batch(batch, client, models, timeout, year))
    return results


# =============================================================================
# NOTE -> RECORD
# =============================================================================


def _usable(notes: list[TastingNote]) -> list[TastingNote]:
    valid = [n for n in notes if n.review_text and len(n.review_text) > MIN_REVIEW_LENGTH]
    logger.info(f"Tasting notes: {len(valid)} of {len(notes)} usable")
    return valid


def note_to_record(
    note: TastingNote,
    config: EngineConfig | None = None,
    reference_year: int | None = None,
    extraction: NoteExtraction | None = None,
) -> TerrestrialRecord:
    """
    Convert one tasting note into a terrestrial record.

    Aging estimates below ``AGING_CONFIDENCE_MIN`` are dropped, so the
    record's stage is inferred as if no age were known.
    """
    year = reference_year or date.today().year
    extraction = extraction or keyword_extraction(note, year)
    estimate = extraction.aging
    if estimate is not None and estimate.confidence < AGING_CONFIDENCE_MIN:
        logger.debug(f"Dropping aging estimate for '{note.wine_name}' (confidence {estimate.confidence})")
        estimate = None
    aging_years = estimate.value if estimate else None

    return TerrestrialRecord(
        name=note.wine_name,
        category=note.category,
        subtype=classify_subtype(note.wine_type, note.wine_name, year),
        vintage=extract_vintage(note.wine_name, year),
        flavor_scores=extraction.flavor_scores,
        aging_years=aging_years,
        aging_years_confidence=estimate.confidence if estimate else None,
        aging_stage=infer_aging_stage(aging_years, config),
        data_source=DataSource.CELLARTRACKER,
        review_text=note.review_text[:MAX_REVIEW_CHARS],
        rating=note.score,
    )


def records_from_notes(
    notes: list[TastingNote],
    config: EngineConfig | None = None,
    reference_year: int | None = None,
) -> list[TerrestrialRecord]:
    """Convert notes with a usable review text; short or empty reviews are dropped."""
    return [note_to_record(n, config, reference_year) for n in _usable(notes)]


async def records_from_notes_with_inference(
    notes: list[TastingNote],
    client: InferenceClient,
    config: EngineConfig | None = None,
    reference_year: int | None = None,
) -> list[TerrestrialRecord]:
    """Like ``records_from_notes`` but scores flavors with the external model first."""
    config = config or EngineConfig()
    valid = _usable(notes)
    extractions = await extract_with_inference(
        valid,
        client,
        config.inference_models,
        config.inference_timeout_seconds,
        reference_year,
    )
    return [note_to_record(n, config, reference_year, x) for n, x in zip(valid, extractions)]
