"""
Integration tests for the HTTP API.

Tests cover:
- Health check
- Assessment save validation and error bodies
- Recent assessments ordering and limit
- Speech analysis endpoint (never non-2xx for JSON bodies)
- Risk fusion endpoint
- Statistics
"""

import importlib
import pytest # pyright: ignore[reportMissingImports]
from pathlib import Path

# Import modules to test
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from fastapi.testclient import TestClient # pyright: ignore[reportMissingImports]

from speech_analysis.adapter import SpeechAnalysisAdapter
from speech_analysis.response_parser import FAILURE_DEFAULTS, NO_SPEECH_RESULT
from storage import InMemoryAssessmentStore
import utils.api_server as api_server
from utils.api_server import create_app
from utils.config_loader import DEFAULT_CONFIG


class FakeClient:
    """Text generation double."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.prompts = []

    def generate(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


class BrokenStore(InMemoryAssessmentStore):
    """Store whose every operation fails."""

    def insert(self, record):
        raise RuntimeError("disk full")

    def list_recent(self, limit=10):
        raise RuntimeError("disk gone")

    def insert_speech_analysis(self, record):
        raise RuntimeError("disk full")


SPEECH_RESPONSE = (
    '{"slurredSpeech": true, "clarity": 55, "fluency": 60, "confidence": 70, '
    '"possibleStrokeIndicators": true, "analysis": "Noticeable slurring."}'
)

VALID_ASSESSMENT = {
    'asymmetryMetrics': {'eyeRatio': 0.1, 'mouthCornerRatio': 0.2, 'overallAsymmetry': 0.15},
    'postureMetrics': {'shoulderImbalance': 0.05, 'armDrop': 0.0},
    'riskLevel': 'low',
}


def make_client(store=None, client=None):
    app = create_app(
        store=store if store is not None else InMemoryAssessmentStore(),
        adapter=SpeechAnalysisAdapter(client),
        config=DEFAULT_CONFIG,
    )
    return TestClient(app)


class TestHealth:
    """Test liveness endpoint."""

    def test_health(self):
        """Health returns ok."""
        response = make_client().get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestSaveAssessment:
    """Test POST /assessments."""

    def test_save(self):
        """Valid assessment is stored with a millisecond id."""
        store = InMemoryAssessmentStore()
        response = make_client(store).post("/assessments", json=VALID_ASSESSMENT)

        assert response.status_code == 201
        body = response.json()
        assert body['message'] == "Assessment saved successfully"
        assert body['id'].isdigit()

        saved = store.list_recent()
        assert len(saved) == 1
        assert saved[0]['id'] == body['id']
        assert saved[0]['timestamp']

    def test_missing_posture(self):
        """Missing postureMetrics is a 400."""
        payload = dict(VALID_ASSESSMENT)
        del payload['postureMetrics']

        response = make_client().post("/assessments", json=payload)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required data"}

    def test_empty_risk_level(self):
        """Empty riskLevel is a 400."""
        response = make_client().post("/assessments", json={**VALID_ASSESSMENT, 'riskLevel': ''})

        assert response.status_code == 400

    def test_explicit_timestamp_kept(self):
        """Client-supplied timestamp is stored as given."""
        store = InMemoryAssessmentStore()
        make_client(store).post(
            "/assessments", json={**VALID_ASSESSMENT, 'timestamp': '2024-05-01T10:00:00.000Z'}
        )

        assert store.list_recent()[0]['timestamp'] == '2024-05-01T10:00:00.000Z'

    def test_store_failure(self):
        """Store exceptions become a 500 with a generic message."""
        response = make_client(BrokenStore()).post("/assessments", json=VALID_ASSESSMENT)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to save assessment"}


class TestRecentAssessments:
    """Test GET /assessments/recent."""

    def test_last_ten_newest_first(self):
        """Fifteen inserts give the last ten in reverse order."""
        client = make_client()
        timestamps = [f"2024-01-01T00:00:{i:02d}.000Z" for i in range(15)]
        for ts in timestamps:
            client.post("/assessments", json={**VALID_ASSESSMENT, 'timestamp': ts})

        response = client.get("/assessments/recent")

        assert response.status_code == 200
        recent = response.json()
        assert len(recent) == 10
        assert [r['timestamp'] for r in recent] == list(reversed(timestamps[5:]))

    def test_store_failure(self):
        """Store exceptions become a 500."""
        response = make_client(BrokenStore()).get("/assessments/recent")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch recent assessments"}


class TestAnalyzeSpeech:
    """Test POST /analyze-speech."""

    def test_analysis(self):
        """Service response is parsed into a full analysis."""
        fake = FakeClient(SPEECH_RESPONSE)
        response = make_client(client=fake).post(
            "/analyze-speech",
            json={
                'transcript': 'the sky is blue in cincinnati',
                'facialMetrics': {'eyeRatio': 0.1, 'mouthCornerRatio': 0.2, 'overallAsymmetry': 0.3},
            },
        )

        assert response.status_code == 200
        analysis = response.json()['analysis']
        assert analysis['slurredSpeech'] is True
        assert analysis['clarity'] == 55
        assert analysis['analysis'] == "Noticeable slurring."
        assert analysis['speechCoherence'] == 0.8
        assert "0.3" in fake.prompts[0]

    def test_transcription_alias(self):
        """The legacy `transcription` key is accepted."""
        fake = FakeClient(SPEECH_RESPONSE)
        response = make_client(client=fake).post("/analyze-speech", json={'transcription': 'hello'})

        assert response.status_code == 200
        assert len(fake.prompts) == 1

    def test_empty_transcript(self):
        """Empty transcript returns the neutral record."""
        response = make_client(client=FakeClient(SPEECH_RESPONSE)).post(
            "/analyze-speech", json={'transcript': ''}
        )

        assert response.status_code == 200
        assert response.json()['analysis'] == NO_SPEECH_RESULT.to_dict()

    def test_service_failure_still_200(self):
        """Service errors degrade to the failure record."""
        response = make_client(client=FakeClient(error=RuntimeError("quota"))).post(
            "/analyze-speech", json={'transcript': 'hello'}
        )

        assert response.status_code == 200
        assert response.json()['analysis'] == FAILURE_DEFAULTS.to_dict()

    def test_store_failure_not_surfaced(self):
        """Failing to record the analysis does not fail the request."""
        response = make_client(BrokenStore(), FakeClient(SPEECH_RESPONSE)).post(
            "/analyze-speech", json={'transcript': 'hello'}
        )

        assert response.status_code == 200

    def test_recorded_in_statistics(self):
        """Each analysis counts as a speech assessment."""
        client = make_client(client=FakeClient(SPEECH_RESPONSE))
        client.post("/analyze-speech", json={'transcript': 'hello'})

        stats = client.get("/statistics").json()

        assert stats['speechAssessmentCount'] == 1
        assert stats['speechIndicatorsCount'] == 1


class TestRisk:
    """Test POST /risk."""

    def test_fusion(self):
        """Metrics are fused with FAST guidance."""
        response = make_client().post("/risk", json={
            'facialMetrics': {'overallAsymmetry': 0.1},
            'postureMetrics': {'shoulderImbalance': 0.2, 'armDrop': 0.0},
            'speechAnalysis': {'slurredSpeech': False, 'clarity': 90, 'fluency': 90},
        })

        assert response.status_code == 200
        body = response.json()
        assert body['score'] == pytest.approx(0.19)
        assert body['level'] == 'low'
        assert body['fast']['time']['advice'] == "Record time and monitor"
        assert 'timestamp' in body

    def test_facial_only_high(self):
        """High facial asymmetry alone is high risk."""
        response = make_client().post("/risk", json={'facialMetrics': {'overallAsymmetry': 0.8}})

        body = response.json()
        assert body['level'] == 'high'
        assert body['fast']['face']['flagged'] is True

    def test_partial_speech_analysis(self):
        """A speech payload without clarity or fluency adds no risk."""
        response = make_client().post("/risk", json={
            'facialMetrics': {'overallAsymmetry': 0.1},
            'speechAnalysis': {'slurredSpeech': False},
        })

        body = response.json()
        assert body['score'] == pytest.approx(0.1)
        assert body['fast']['speech']['flagged'] is False


class TestStatistics:
    """Test GET /statistics."""

    def test_risk_counts(self):
        """Saved assessments are counted by level."""
        client = make_client()
        client.post("/assessments", json={**VALID_ASSESSMENT, 'riskLevel': 'high'})
        client.post("/assessments", json={**VALID_ASSESSMENT, 'riskLevel': 'low'})

        stats = client.get("/statistics").json()

        assert stats['totalAssessments'] == 2
        assert stats['highRiskCount'] == 1
        assert stats['lowRiskCount'] == 1


class TestDefaultApp:
    """Test the lazily built default application."""

    def test_import_does_not_build(self):
        """Loading the module builds nothing until the app is requested."""
        importlib.reload(api_server)

        assert api_server._default_app is None

    def test_built_once(self, monkeypatch):
        """The module attribute and the factory return the same app."""
        monkeypatch.setattr(api_server, '_default_app', None)
        monkeypatch.delenv('GEMINI_API_KEY', raising=False)

        app = api_server.get_app()

        assert api_server.app is app
        assert TestClient(app).get("/health").status_code == 200

    def test_unknown_attribute(self):
        """Other missing attributes still raise."""
        with pytest.raises(AttributeError):
            api_server.not_a_route
