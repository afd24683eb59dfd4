import asyncio

import pytest

from app.helpers.vocabulary import SKILLS_SUGGESTION
from app.services.fit_score import calculate_fit_score
from app.utils.exceptions import DimensionMismatchError, EmbeddingError


class TestCalculateFitScore:
    """Aggregation of embedding similarity and rule-based breakdown"""

    def test_spec_example(self, fake_embedder, sample_resume, sample_job):
        client = fake_embedder(vectors={
            sample_resume: [1.0, 1.0, 0.0],
            sample_job: [1.0, 0.0, 0.0],
        })

        result = asyncio.run(calculate_fit_score(sample_resume, sample_job, client=client))

        # cos(45 deg) = 0.7071 -> 71
        assert result.score == 71
        assert result.breakdown.skills_match == 67
        assert result.breakdown.experience_match == 80
        assert SKILLS_SUGGESTION in result.suggestions
        assert result.degraded is False
        assert sorted(client.calls) == sorted([sample_resume, sample_job])

    def test_score_independent_of_breakdown(self, fake_embedder):
        # identical embeddings, nothing in common by the rules
        client = fake_embedder(default=[0.3, 0.4])
        result = asyncio.run(calculate_fit_score("Figma designer", "Python and SQL engineer", client=client))

        assert result.score == 100
        assert result.breakdown.skills_match == 0

    def test_negative_similarity_is_not_clamped(self, fake_embedder):
        client = fake_embedder(vectors={"resume": [1.0, 0.0], "job": [-1.0, 0.0]})

        result = asyncio.run(calculate_fit_score("resume", "job", client=client))

        assert result.score == -100

    def test_zero_vector_scores_zero(self, fake_embedder):
        client = fake_embedder(vectors={"resume": [0.0, 0.0], "job": [1.0, 0.0]})

        result = asyncio.run(calculate_fit_score("resume", "job", client=client))

        assert result.score == 0

    def test_repeatable(self, fake_embedder, sample_resume, sample_job):
        client = fake_embedder(vectors={sample_resume: [0.2, 0.9, 0.1], sample_job: [0.4, 0.8, 0.3]})

        first = asyncio.run(calculate_fit_score(sample_resume, sample_job, client=client))
        second = asyncio.run(calculate_fit_score(sample_resume, sample_job, client=client))

        assert first == second

    def test_embedding_failure_fails_whole_call(self, fake_embedder, sample_resume, sample_job):
        client = fake_embedder(error=EmbeddingError(details="provider down"), fail_on=sample_job)

        with pytest.raises(EmbeddingError):
            asyncio.run(calculate_fit_score(sample_resume, sample_job, client=client, allow_degraded=False))

    def test_degraded_mode_keeps_breakdown(self, fake_embedder, sample_resume, sample_job):
        client = fake_embedder(error=EmbeddingError(details="provider down"))

        result = asyncio.run(calculate_fit_score(sample_resume, sample_job, client=client, allow_degraded=True))

        assert result.degraded is True
        assert result.score is None
        assert result.breakdown.skills_match == 67
        assert result.breakdown.experience_match == 80

    def test_dimension_mismatch_is_never_degraded(self, fake_embedder):
        client = fake_embedder(vectors={"resume": [1.0, 0.0], "job": [1.0, 0.0, 0.0]})

        with pytest.raises(DimensionMismatchError):
            asyncio.run(calculate_fit_score("resume", "job", client=client, allow_degraded=True))

    def test_embeddings_requested_concurrently(self):
        class GatedClient:
            """Each call waits until both calls have started."""

            def __init__(self):
                self.started = 0
                self.both_started = None

            async def embed(self, text, timeout=None):
                if self.both_started is None:
                    self.both_started = asyncio.Event()
                self.started += 1
                if self.started == 2:
                    self.both_started.set()
                await asyncio.wait_for(self.both_started.wait(), timeout=1)
                return [1.0, 0.0]

        result = asyncio.run(calculate_fit_score("resume", "job", client=GatedClient()))

        assert result.score == 100

    def test_failed_embedding_cancels_the_other_request(self):
        class OneSidedFailure:
            """The job embedding fails at once; the resume embedding never finishes on its own."""

            def __init__(self):
                self.cancelled = False

            async def embed(self, text, timeout=None):
                if text == "job":
                    raise EmbeddingError(details="503 Server Error")
                try:
                    await asyncio.sleep(30)
                except asyncio.CancelledError:
                    self.cancelled = True
                    raise
                return [1.0, 0.0]

        client = OneSidedFailure()

        async def score_then_settle():
            with pytest.raises(EmbeddingError):
                await calculate_fit_score("resume", "job", client=client, allow_degraded=False)
            # let the cancelled task observe its cancellation
            await asyncio.sleep(0)
            await asyncio.sleep(0)

        asyncio.run(asyncio.wait_for(score_then_settle(), timeout=5))

        assert client.cancelled is True
