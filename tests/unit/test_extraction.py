"""
Unit tests for tasting-note extraction.
"""

import json
from datetime import date

import pytest

from uaps.core.config import EngineConfig
from uaps.core.models import AgingStage, DataSource, FlavorAxis
from uaps.exceptions import InferenceTimeoutError, MalformedResponseError
from uaps.training.extraction import (
    TastingNote,
    aging_years_from_text,
    aging_years_from_vintage,
    classify_subtype,
    extract_flavor_scores,
    extract_vintage,
    extract_with_inference,
    infer_aging_years,
    parse_extraction_response,
    parse_note_date,
    records_from_notes,
    records_from_notes_with_inference,
)


class TestFlavorScores:
    def test_hit_counts(self):
        scores = extract_flavor_scores(
            "Lemon and grapefruit with a zesty edge, brioche and toast, a hint of almond."
        )
        assert scores[FlavorAxis.CITRUS] == 80.0  # lemon, grapefruit, zesty
        assert scores[FlavorAxis.BRIOCHE] == 40.0
        assert scores[FlavorAxis.TOAST] == 40.0
        assert scores[FlavorAxis.NUTTY] == 40.0
        assert scores[FlavorAxis.OXIDATION] == 0.0

    def test_two_hits(self):
        assert extract_flavor_scores("honey and beeswax")[FlavorAxis.HONEY] == 60.0

    def test_case_insensitive(self):
        assert extract_flavor_scores("SHERRY notes")[FlavorAxis.OXIDATION] == 40.0

    def test_all_axes_present(self):
        assert set(extract_flavor_scores("")) == set(FlavorAxis)


class TestAgingYears:
    def test_from_vintage(self):
        estimate = aging_years_from_vintage(2012, 2022)
        assert (estimate.value, estimate.confidence, estimate.source) == (10.0, 0.92, "vintage_calc")

    def test_old_vintage_lower_confidence(self):
        assert aging_years_from_vintage(1985, 2022).confidence == 0.70

    @pytest.mark.parametrize("vintage,review", [(1850, 2020), (2023, 2020), (1960, 2020), (None, 2020)])
    def test_rejected_vintages(self, vintage, review):
        assert aging_years_from_vintage(vintage, review) is None

    def test_years_in_text(self):
        estimate = aging_years_from_text("This one was aged 6 years before release.")
        assert (estimate.value, estimate.confidence) == (6.0, 0.88)

    def test_years_on_lees(self):
        assert aging_years_from_text("Spent 9 years on the lees").value == 9.0

    def test_months_in_text(self):
        estimate = aging_years_from_text("36 months on the lees, fine mousse")
        assert (estimate.value, estimate.confidence) == (3.0, 0.85)

    def test_months_rounded(self):
        assert aging_years_from_text("after 40 months of aging").value == 3.3

    def test_nothing_found(self):
        assert aging_years_from_text("Crisp and fresh.") is None

    def test_vintage_preferred(self):
        assert infer_aging_years("aged 6 years", 2015, 2020).value == 5.0
        assert infer_aging_years("aged 6 years", None, 2020).value == 6.0


class TestParsing:
    def test_vintage_from_name(self):
        assert extract_vintage("2008 Dom Pérignon Brut", 2024) == 2008
        assert extract_vintage("NV Krug Grande Cuvée", 2024) is None
        assert extract_vintage("2099 Future Cuvée", 2024) is None

    def test_dates(self):
        assert parse_note_date("3/14/2021") == date(2021, 3, 14)
        assert parse_note_date("2021-03-14") == date(2021, 3, 14)
        assert parse_note_date("sometime") is None
        assert parse_note_date(None) is None

    @pytest.mark.parametrize(
        "wine_type,name,expected",
        [
            ("Sparkling - Rosé", "NV Billecart Rosé", "rose"),
            ("White - Sparkling", "NV Blanc de Blancs", "blanc_de_blancs"),
            ("White - Sparkling", "NV Blanc de Noirs", "blanc_de_noirs"),
            ("White - Sparkling", "2010 Cuvée", "vintage"),
            ("White - Sparkling", "2022 Cuvée", "blend"),
            ("White - Sparkling", "NV Brut", "blend"),
        ],
    )
    def test_subtype(self, wine_type, name, expected):
        assert classify_subtype(wine_type, name, 2024) == expected


class TestRecordsFromNotes:
    def test_conversion(self):
        notes = [
            TastingNote(
                wine_name="2012 Grande Année",
                review_text="Honeyed, toasty and nutty with almond and brioche; still some lemon.",
                wine_type="White - Sparkling",
                tasting_date=date(2022, 5, 1),
                score=94,
            ),
            TastingNote(wine_name="NV Brut", review_text="Nice."),
        ]
        records = records_from_notes(notes, reference_year=2024)
        assert len(records) == 1
        record = records[0]
        assert record.vintage == 2012
        assert record.aging_years == 10.0
        assert record.aging_stage is AgingStage.MATURE
        assert record.subtype == "vintage"
        assert record.rating == 94
        assert record.data_source is DataSource.CELLARTRACKER
        assert record.flavor_scores[FlavorAxis.NUTTY] == 60.0

    def test_note_without_age(self):
        notes = [TastingNote(wine_name="NV Brut", review_text="Fresh apple and pear, lively mousse.")]
        record = records_from_notes(notes, reference_year=2024)[0]
        assert record.aging_years is None
        assert record.aging_stage is AgingStage.DEVELOPING

    def test_from_dict_camel_case(self):
        note = TastingNote.from_dict(
            {"wineName": "2015 Brut", "reviewText": "Toast", "date": "1/2/2020", "score": "91"}
        )
        assert note.wine_name == "2015 Brut"
        assert note.tasting_date == date(2020, 1, 2)
        assert note.score == 91.0

    def test_low_confidence_age_is_dropped(self):
        notes = [
            TastingNote(
                wine_name="1985 Krug Collection",
                review_text="Deep amber, walnut and sherry, still a fine thread of mousse.",
            )
        ]
        record = records_from_notes(notes, reference_year=2024)[0]
        assert record.aging_years is None
        assert record.aging_years_confidence is None
        assert record.aging_stage is AgingStage.DEVELOPING


class ScriptedClient:
    """Returns canned responses per model; exceptions are raised."""

    def __init__(self, responses):
        self.responses = responses
        self.calls: list[str] = []
        self.prompts: list[str] = []

    async def generate(self, prompt, model, timeout):
        self.calls.append(model)
        self.prompts.append(prompt)
        result = self.responses[model]
        if isinstance(result, Exception):
            raise result
        return result


NOTES = [
    TastingNote(
        wine_name="2012 Grande Année",
        review_text="Honeyed and toasty, almond and brioche over lemon.",
        tasting_date=date(2022, 5, 1),
    ),
    TastingNote(wine_name="NV Brut Réserve", review_text="Developing nicely, pastry and pear, fine mousse."),
]

MODEL_RESULT = [
    {"citrus": 35, "brioche": 70, "honey": 55, "nutty": 50, "toast": 65, "oxidation": 10,
     "agingYears": 3, "agingYearsConfidence": 0.6},
    {"citrus": 60, "brioche": 55, "honey": 15, "nutty": 10, "toast": 20, "oxidation": 5,
     "agingYears": 4, "agingYearsConfidence": 0.85},
]


class TestModelAssistedExtraction:
    @pytest.mark.asyncio
    async def test_model_scores_used(self):
        client = ScriptedClient({"model-a": "```json\n" + json.dumps(MODEL_RESULT) + "\n```"})
        results = await extract_with_inference(NOTES, client, ("model-a",), reference_year=2024)

        assert client.calls == ["model-a"]
        assert results[0].flavor_scores[FlavorAxis.BRIOCHE] == 70
        assert results[1].aging.value == 4.0
        assert results[1].aging.source == "model"
        assert "(vintage: 2012)" in client.prompts[0]
        assert "[reviewed: 2022-05-01]" in client.prompts[0]

    @pytest.mark.asyncio
    async def test_vintage_age_beats_model_age(self):
        client = ScriptedClient({"model-a": json.dumps(MODEL_RESULT)})
        results = await extract_with_inference(NOTES, client, ("model-a",), reference_year=2024)

        assert results[0].aging.value == 10.0
        assert results[0].aging.source == "vintage_calc"

    @pytest.mark.asyncio
    async def test_next_variant_after_failure(self):
        client = ScriptedClient(
            {
                "model-a": InferenceTimeoutError("timeout", model="model-a"),
                "model-b": json.dumps(MODEL_RESULT[:1]),  # wrong length
                "model-c": json.dumps(MODEL_RESULT),
            }
        )
        results = await extract_with_inference(NOTES, client, ("model-a", "model-b", "model-c"), reference_year=2024)

        assert client.calls == ["model-a", "model-b", "model-c"]
        assert results[1].flavor_scores[FlavorAxis.CITRUS] == 60

    @pytest.mark.asyncio
    async def test_keyword_fallback_when_all_fail(self):
        client = ScriptedClient({"model-a": "no idea", "model-b": RuntimeError("boom")})
        results = await extract_with_inference(NOTES, client, ("model-a", "model-b"), reference_year=2024)

        assert results[0].flavor_scores == extract_flavor_scores(NOTES[0].review_text)
        assert results[0].aging.source == "vintage_calc"

    @pytest.mark.asyncio
    async def test_batches_of_twenty(self):
        notes = [TastingNote(wine_name=f"NV Brut {i}", review_text="Fresh lemon and brioche.") for i in range(25)]
        batch_results = {20: [MODEL_RESULT[1]] * 20, 5: [MODEL_RESULT[1]] * 5}

        class BatchClient:
            def __init__(self):
                self.sizes = []

            async def generate(self, prompt, model, timeout):
                size = prompt.count("\nReview: ")
                self.sizes.append(size)
                return json.dumps(batch_results[size])

        client = BatchClient()
        results = await extract_with_inference(notes, client, ("model-a",), reference_year=2024)
        assert client.sizes == [20, 5]
        assert len(results) == 25

    @pytest.mark.asyncio
    async def test_records_gate_low_confidence_model_age(self):
        notes = [TastingNote(wine_name="NV Brut", review_text="Bready and nutty, clearly mature now.")]
        result = [dict(MODEL_RESULT[0], agingYears=12, agingYearsConfidence=0.6)]
        client = ScriptedClient({"model-a": json.dumps(result)})
        config = EngineConfig(inference_models=("model-a",))

        records = await records_from_notes_with_inference(notes, client, config, reference_year=2024)
        assert records[0].aging_years is None
        assert records[0].aging_stage is AgingStage.DEVELOPING
        assert records[0].flavor_scores[FlavorAxis.TOAST] == 65


class TestParseExtractionResponse:
    def test_array_inside_prose(self):
        text = "Here you go:\n" + json.dumps(MODEL_RESULT) + "\nHope it helps."
        assert len(parse_extraction_response(text, 2)) == 2

    def test_length_mismatch(self):
        with pytest.raises(MalformedResponseError):
            parse_extraction_response(json.dumps(MODEL_RESULT), 3)

    def test_not_an_array(self):
        with pytest.raises(MalformedResponseError):
            parse_extraction_response('{"citrus": 50}', 1)
