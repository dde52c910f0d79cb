"""
Prompts for the external aging-prediction model.

The request carries:
1. Summaries of the best-matching terrestrial clusters
2. TCI/FRI/BRI with intervals and justification
3. The candidate's attributes and planned undersea duration
4. An optional expert flavor profile

and asks for a single JSON object in the shape parsed by
``uaps.ensemble.blender.ExternalPredictionResponse``.

A second prompt asks for flavor scores and aging years of a batch of
tasting notes.
"""
from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from uaps.core.models import (
    FLAVOR_AXES,
    CandidateProduct,
    ClusterMatch,
    CoefficientMeta,
    CoefficientSet,
    FlavorAxis,
)

PROMPT_CLUSTER_LIMIT = 3

# =============================================================================
# System Prompt
# =============================================================================

SYSTEM_PROMPT = """You are an oenologist specialising in sparkling wine aged under the sea.
You combine terrestrial aging statistics with physical correction coefficients
to predict how a bottle will evolve during undersea aging.

RULES:
1. Every flavor axis and quality score is a number between 0 and 100
2. Harvest window months are whole numbers between 1 and 60
3. Ground every statement in the data provided; do not invent measurements
4. Return ONLY valid JSON, no markdown, no commentary"""

RESPONSE_FORMAT = """Return JSON exactly in this shape:
{
  "flavorProfile": {"citrus": 0-100, "brioche": 0-100, "honey": 0-100, "nutty": 0-100, "toast": 0-100, "oxidation": 0-100},
  "qualityScores": {"textureMaturity": 0-100, "aromaFreshness": 0-100, "offFlavorRisk": 0-100, "overallQuality": 0-100},
  "harvestWindow": {"startMonths": int, "endMonths": int},
  "insight": "2-3 sentences on the expected evolution",
  "riskWarning": "string or null",
  "agingFactors": {"textureMult": 0.3-1.5, "aromaDecay": 0.3-1.5, "riskMult": 0.3-2.0, "baseAgingYears": 0-30},
  "qualityWeights": {"texture": number, "aroma": number, "bubble": number, "risk": number}
}"""


def _format_coefficient(name: str, meta: CoefficientMeta) -> str:
    return (
        f"- {name} = {meta.value} (95% CI {meta.lower95}-{meta.upper95}, {meta.source.value}): "
        f"{meta.justification}"
    )


def _format_cluster(index: int, match: ClusterMatch) -> str:
    model = match.model
    means = ", ".join(
        f"{axis.value} {model.flavor_profile[axis].mean:g}"
        for axis in FLAVOR_AXES
        if axis in model.flavor_profile and model.flavor_profile[axis].count > 0
    )
    return (
        f"{index}. {model.category}/{model.aging_stage.value} "
        f"(similarity {match.similarity:.1f}, n={model.sample_count}): {means or 'no flavor data'}"
    )


def _format_candidate(candidate: CandidateProduct, duration_months: int) -> list[str]:
    lines = [f"- Name: {candidate.name}", f"- Category: {candidate.category}"]
    optional = (
        ("Subtype", candidate.subtype),
        ("Vintage", candidate.vintage),
        ("Producer", candidate.producer),
        ("pH", candidate.ph),
        ("Dosage (g/L)", candidate.dosage),
        ("Alcohol (%)", candidate.alcohol),
        ("Acidity (g/L)", candidate.acidity),
    )
    lines.extend(f"- {label}: {value}" for label, value in optional if value is not None)
    lines.append(f"- Reduction potential: {candidate.reduction_potential.value}")
    lines.append(f"- Aging depth: {candidate.aging_depth_m:g} m")
    lines.append(f"- Planned undersea duration: {duration_months} months")
    return lines


def build_prediction_prompt(
    candidate: CandidateProduct,
    duration_months: int,
    matches: Sequence[ClusterMatch],
    coefficients: CoefficientSet,
    expert_profile: dict[FlavorAxis, float] | None = None,
) -> str:
    """Assemble the full prediction request text."""
    lines = [SYSTEM_PROMPT, "", "TERRESTRIAL CLUSTERS (best matches):"]
    top = list(matches)[:PROMPT_CLUSTER_LIMIT]
    if top:
        lines.extend(_format_cluster(i, match) for i, match in enumerate(top, start=1))
    else:
        lines.append("- none (no trained clusters available)")

    lines.append("")
    lines.append("CORRECTION COEFFICIENTS:")
    lines.append(_format_coefficient("TCI (texture acceleration)", coefficients.tci))
    lines.append(_format_coefficient("FRI (freshness retention)", coefficients.fri))
    lines.append(_format_coefficient("BRI (bubble refinement)", coefficients.bri))

    lines.append("")
    lines.append("CANDIDATE:")
    lines.extend(_format_candidate(candidate, duration_months))

    if expert_profile:
        lines.append("")
        lines.append("EXPERT FLAVOR PROFILE (current, 0-100):")
        lines.append(", ".join(f"{axis.value} {value:g}" for axis, value in expert_profile.items()))

    lines.append("")
    lines.append(RESPONSE_FORMAT)
    return "\n".join(lines)


# =============================================================================
# Tasting-Note Extraction
# =============================================================================

EXTRACTION_PROMPT = """Analyze these sparkling wine tasting notes and extract, for each note:
1. Flavor intensity scores (0-100) for six axes:
   - citrus: lemon, lime, grapefruit, apple, pear, stone fruit
   - brioche: bread, pastry, biscuit, yeast, lees, autolysis
   - honey: honey, beeswax, candied or dried fruit, marmalade
   - nutty: almond, hazelnut, walnut, marzipan
   - toast: toast, smoke, roasted coffee, caramel
   - oxidation: sherry-like, bruised apple, madeira, oxidative notes
2. agingYears: how old the wine was at the time of review
   - vintage and review date both given: review year minus vintage
   - explicit "X years old/aged" or "X months on lees": extract directly
   - only maturity descriptors (young, developing, mature, aged): estimate
   - unclear: null
3. agingYearsConfidence: 0.90 (from dates), 0.85 (explicit text),
   0.60 (from descriptors), 0 when agingYears is null

Return ONLY a JSON array with one object per note, in input order:
[{"citrus": 65, "brioche": 45, "honey": 20, "nutty": 15, "toast": 30, "oxidation": 5, "agingYears": 5, "agingYearsConfidence": 0.85}]"""


def build_extraction_prompt(notes: Sequence[tuple[str, int | None, date | None, str]]) -> str:
    """
    Batch extraction request.

    Each note is ``(wine_name, vintage, review_date, review_text)``.
    """
    blocks = []
    for i, (name, vintage, review_date, text) in enumerate(notes, start=1):
        header = f"[{i}] Wine: {name}"
        if vintage:
            header += f" (vintage: {vintage})"
        if review_date:
            header += f" [reviewed: {review_date.isoformat()}]"
        blocks.append(f"{header}\nReview: {text}")
    return f"{EXTRACTION_PROMPT}\n\nNotes:\n" + "\n\n".join(blocks)
