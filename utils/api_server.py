"""
FastAPI server for the stroke screening service.

Provides REST endpoints for saving and listing FAST assessments, analyzing
speech transcripts and fusing metrics into a risk assessment.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.data_models import FacialMetrics, PostureMetrics, utc_now
from core.errors import RequestValidationError
from fusion import RiskFusionEngine, evaluate_fast_protocol, speech_from_wire
from speech_analysis import SpeechAnalysisAdapter
from speech_analysis.gemini_client import GeminiTextClient
from storage import AssessmentStore, create_store, validate_assessment

from .config_loader import get_nested_config, load_default_config

logger = logging.getLogger(__name__)

MISSING_DATA_ERROR = "Missing required data"
SAVE_FAILED_ERROR = "Failed to save assessment"
FETCH_FAILED_ERROR = "Failed to fetch recent assessments"
STATISTICS_FAILED_ERROR = "Failed to fetch statistics"
INVALID_JSON_ERROR = "Request body must be a JSON object"


def new_record_id() -> str:
    """Capture-time id: current epoch milliseconds as a string."""
    return str(int(time.time() * 1000))


def build_speech_adapter(config: Dict[str, Any]) -> SpeechAnalysisAdapter:
    """
    Build the speech adapter from the `gemini` config section.

    Without an API key the adapter is created with no client, so every
    analysis resolves to the failure defaults instead of the server
    refusing to start.
    """
    try:
        client = GeminiTextClient(
            model_name=get_nested_config(config, 'gemini.model', 'gemini-1.5-pro'),
            timeout=get_nested_config(config, 'gemini.timeout_sec', 30.0),
            api_key_env=get_nested_config(config, 'gemini.api_key_env', 'GEMINI_API_KEY'),
        )
    except ValueError as e:
        logger.warning(f"Gemini client unavailable: {e}")
        client = None

    return SpeechAnalysisAdapter(client)


async def read_json_object(request: Request) -> Optional[Dict[str, Any]]:
    """Parse the request body; None unless it is a JSON object."""
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def create_app(
    store: Optional[AssessmentStore] = None,
    adapter: Optional[SpeechAnalysisAdapter] = None,
    config: Optional[Dict[str, Any]] = None
) -> FastAPI:
    """
    Build the API application.

    Args:
        store: Assessment store (default: from `storage` config)
        adapter: Speech analysis adapter (default: Gemini-backed)
        config: Configuration dictionary (default: configs/default.yaml)

    Returns:
        FastAPI application
    """
    config = config if config is not None else load_default_config()
    store = store if store is not None else create_store(config.get('storage'))
    adapter = adapter if adapter is not None else build_speech_adapter(config)
    recent_limit = get_nested_config(config, 'storage.recent_limit', 10)
    engine = RiskFusionEngine()

    app = FastAPI(
        title="Stroke Screen API",
        description="REST API for FAST stroke screening assessments",
        version="1.0.0"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_nested_config(config, 'server.cors_origins', ['*']),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.store = store
    app.state.adapter = adapter

    @app.get("/health")
    async def health():
        """Liveness check."""
        return {"status": "ok"}

    @app.post("/assessments", status_code=201)
    async def save_assessment(request: Request):
        """
        Save a FAST assessment.

        Body:
            asymmetryMetrics, postureMetrics, riskLevel (required),
            timestamp (optional ISO-8601, defaults to now)
        """
        body = await read_json_object(request)
        if body is None:
            return JSONResponse(status_code=400, content={"error": MISSING_DATA_ERROR})

        try:
            validate_assessment(body)
        except RequestValidationError as e:
            logger.info(f"Rejected assessment: {e}")
            return JSONResponse(status_code=400, content={"error": MISSING_DATA_ERROR})

        record_id = new_record_id()
        record = {
            'id': record_id,
            'asymmetryMetrics': body['asymmetryMetrics'],
            'postureMetrics': body['postureMetrics'],
            'riskLevel': body['riskLevel'],
            'timestamp': body.get('timestamp') or utc_now().isoformat(),
        }

        try:
            store.insert(record)
        except Exception as e:
            logger.error(f"Error saving assessment: {e}")
            return JSONResponse(status_code=500, content={"error": SAVE_FAILED_ERROR})

        logger.info(f"Saved assessment {record_id} (riskLevel={record['riskLevel']})")
        return {"id": record_id, "message": "Assessment saved successfully"}

    @app.get("/assessments/recent")
    async def recent_assessments():
        """Most recent assessments, newest first."""
        try:
            return store.list_recent(limit=recent_limit)
        except Exception as e:
            logger.error(f"Error fetching recent assessments: {e}")
            return JSONResponse(status_code=500, content={"error": FETCH_FAILED_ERROR})

    @app.post("/analyze-speech")
    async def analyze_speech(request: Request):
        """
        Analyze a speech transcript.

        Body:
            transcript (or transcription), facialMetrics (optional),
            readingPassage (optional)

        Always answers 200 with a complete analysis for a JSON object body.
        """
        body = await read_json_object(request)
        if body is None:
            return JSONResponse(status_code=400, content={"error": INVALID_JSON_ERROR})

        transcript = body.get('transcript')
        if transcript is None:
            transcript = body.get('transcription')
        facial = body.get('facialMetrics')
        passage = body.get('readingPassage')
        if not isinstance(facial, dict):
            facial = None
        if not isinstance(passage, str):
            passage = None

        metrics = await asyncio.to_thread(adapter.analyze, transcript, facial, passage)
        analysis = metrics.to_dict()

        try:
            store.insert_speech_analysis({
                'id': new_record_id(),
                'transcript': transcript if isinstance(transcript, str) else "",
                'analysis': analysis,
                'timestamp': utc_now().isoformat(),
            })
        except Exception as e:
            logger.error(f"Error recording speech analysis: {e}")

        return {"analysis": analysis}

    @app.post("/risk")
    async def assess_risk(request: Request):
        """
        Fuse metrics into a risk assessment with FAST guidance.

        Body:
            facialMetrics, postureMetrics (optional), speechAnalysis (optional)
        """
        body = await read_json_object(request)
        if body is None:
            return JSONResponse(status_code=400, content={"error": INVALID_JSON_ERROR})

        facial_data = body.get('facialMetrics')
        posture_data = body.get('postureMetrics')
        speech_data = body.get('speechAnalysis')

        facial = FacialMetrics.from_dict(facial_data if isinstance(facial_data, dict) else None)
        posture = PostureMetrics.from_dict(posture_data if isinstance(posture_data, dict) else None)
        speech = speech_from_wire(speech_data) if isinstance(speech_data, dict) else None

        assessment = engine.compute(facial, posture, speech)
        fast = evaluate_fast_protocol(facial, posture, speech, assessment)

        result = assessment.to_dict()
        result['fast'] = fast.to_dict()
        return result

    @app.get("/statistics")
    async def statistics():
        """Aggregate counts over stored assessments."""
        try:
            return store.statistics()
        except Exception as e:
            logger.error(f"Error computing statistics: {e}")
            return JSONResponse(status_code=500, content={"error": STATISTICS_FAILED_ERROR})

    return app


def start_server(app: FastAPI, host: str = "127.0.0.1", port: int = 8000):
    """
    Start the API server.

    Args:
        app: Application to serve
        host: Host address
        port: Port number
    """
    logger.info(f"Starting Stroke Screen API server at http://{host}:{port}")
    logger.info(f"API documentation available at http://{host}:{port}/docs")
    uvicorn.run(app, host=host, port=port)


_default_app: Optional[FastAPI] = None


def get_app() -> FastAPI:
    """
    Default application from the bundled config, built on first use.

    Serve with `uvicorn utils.api_server:get_app --factory` or
    `uvicorn utils.api_server:app`.
    """
    global _default_app
    if _default_app is None:
        _default_app = create_app()
    return _default_app


def __getattr__(name: str):
    if name == "app":
        return get_app()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
