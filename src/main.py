"""
ReviewTrust Authenticity Service
Scores review text and reviewer metadata with explainable heuristics
"""

from fastapi import FastAPI, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict, Any, List
import logging
import os
import time
from datetime import datetime, timezone
from contextlib import asynccontextmanager

from dotenv import load_dotenv

# Load environment variables early so Settings picks them up
load_dotenv()

from reviewtrust.config import get_settings  # noqa: E402
from reviewtrust.lexicons import default_lexicons  # noqa: E402
from reviewtrust.models import ReviewerProfile, SignalOutput  # noqa: E402
from reviewtrust.pipeline import ReviewInput, ReviewPipeline  # noqa: E402
from reviewtrust.scorer import TrustScorer  # noqa: E402

settings = get_settings()

# Logging configuration
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler('logs/reviewtrust.log') if os.path.exists('logs') else logging.NullHandler()
    ]
)

logger = logging.getLogger(__name__)


# Metrics tracker
class Metrics:
    """Track service metrics"""

    def __init__(self):
        self.total_requests = 0
        self.successful_requests = 0
        self.failed_requests = 0
        self.total_processing_time = 0.0
        self.reviews_scored = 0
        self.levels: Dict[str, int] = {}
        self.start_time = time.time()

    def record_request(self, success: bool, processing_time: float, level: Optional[str] = None, reviews: int = 0):
        """Record request outcome"""
        self.total_requests += 1
        if success:
            self.successful_requests += 1
        else:
            self.failed_requests += 1
        self.total_processing_time += processing_time
        self.reviews_scored += reviews
        if level:
            self.levels[level] = self.levels.get(level, 0) + 1

    def get_stats(self) -> Dict[str, Any]:
        """Get current metrics"""
        uptime = time.time() - self.start_time
        avg_time = self.total_processing_time / self.total_requests if self.total_requests > 0 else 0

        return {
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "success_rate": f"{(self.successful_requests / self.total_requests * 100):.1f}%" if self.total_requests > 0 else "N/A",
            "average_processing_time": f"{avg_time:.3f}s",
            "reviews_scored": self.reviews_scored,
            "levels": dict(self.levels),
            "uptime_seconds": int(uptime)
        }


metrics = Metrics()
pipeline: Optional[ReviewPipeline] = None


def get_pipeline() -> ReviewPipeline:
    global pipeline
    if pipeline is None:
        pipeline = ReviewPipeline()
    return pipeline


# Application lifespan
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    global pipeline
    logger.info("=" * 60)
    logger.info(f"Starting {settings.service_title} v{settings.service_version}")
    logger.info("=" * 60)

    default_lexicons()
    get_pipeline()
    logger.info(
        "Scorer ready: min_signals=%d decay=%.2f full_coverage=%d workers=%d",
        settings.min_signals_required,
        settings.confidence_decay,
        settings.full_coverage_signals,
        settings.batch_max_workers,
    )

    yield

    logger.info("Shutting down...")
    if pipeline is not None:
        pipeline.close()
        pipeline = None
    logger.info("Shutdown complete")


# FastAPI application
app = FastAPI(
    title=settings.service_title,
    version=settings.service_version,
    description="Explainable authenticity scoring for reviews and reviewer accounts",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": str(exc) if os.getenv("DEBUG") else "An error occurred"
        }
    )


# Request/Response models
class ScoreRequest(BaseModel):
    """Pre-computed signal bundle keyed by category then signal name"""

    signals: Dict[str, Dict[str, Optional[SignalOutput]]] = Field(default_factory=dict)


class TextRequest(BaseModel):
    """Single review text, optionally with the reviewer's profile"""

    text: str = Field(..., max_length=20000, description="Assembled review text (title + body)")
    profile: Optional[ReviewerProfile] = None


class PageRequest(BaseModel):
    """Every review extracted from one product page"""

    reviews: List[ReviewInput] = Field(..., min_length=1, max_length=500)
    histogram: Optional[Dict[int, float]] = Field(None, description="Star rating -> percent of reviews")

    @field_validator('histogram')
    @classmethod
    def validate_histogram(cls, v):
        if v is None:
            return v
        for stars, pct in v.items():
            if stars < 1 or stars > 5:
                raise ValueError('Histogram keys must be star ratings 1-5')
            if pct < 0 or pct > 100:
                raise ValueError('Histogram values must be percentages')
        return v


def _result_payload(result) -> Dict[str, Any]:
    payload = result.as_dict()
    payload.update({
        "color": result.color,
        "icon": result.icon,
        "label": result.label,
        "details": {name: detail.model_dump() for name, detail in result.details.items()},
    })
    return payload


def _signals_payload(signals: Dict[str, Any]) -> Dict[str, Any]:
    return {
        name: value.model_dump() if isinstance(value, BaseModel) else value
        for name, value in signals.items()
    }


# API endpoints
@app.get("/")
async def root():
    """Root endpoint with service information"""
    return {
        "service": settings.service_title,
        "version": settings.service_version,
        "status": "operational",
        "endpoints": {
            "score": "POST /score",
            "analyze_text": "POST /analyze/text",
            "analyze_page": "POST /analyze/page",
            "health": "GET /health",
            "metrics": "GET /metrics"
        }
    }


@app.get("/health")
async def health_check():
    """Detailed health check"""
    lexicons_loaded = True
    try:
        default_lexicons()
    except FileNotFoundError as exc:
        logger.error(f"Lexicons unavailable: {exc}")
        lexicons_loaded = False

    return {
        "status": "healthy" if lexicons_loaded else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "components": {
            "api": "healthy",
            "lexicons": "loaded" if lexicons_loaded else "missing",
            "scorer": "ready" if pipeline is not None else "idle"
        },
        "metrics": metrics.get_stats()
    }


@app.get("/metrics")
async def get_metrics():
    """Get service metrics"""
    return {
        "service": settings.service_title,
        "version": settings.service_version,
        "metrics": metrics.get_stats()
    }


@app.post("/score")
async def score_signals(request_body: ScoreRequest):
    """Combine an already computed signal bundle into a trust verdict"""
    start_time = time.time()
    result = TrustScorer().compute_score(request_body.signals)
    metrics.record_request(success=True, processing_time=time.time() - start_time, level=result.level.value)
    return _result_payload(result)


@app.post("/analyze/text")
async def analyze_text(request_body: TextRequest):
    """Run the lexical (and account, when given) detectors over one review"""
    start_time = time.time()
    scored = await run_in_threadpool(get_pipeline().analyze_text, request_body.text, request_body.profile)
    metrics.record_request(
        success=True,
        processing_time=time.time() - start_time,
        level=scored.result.level.value,
        reviews=1,
    )
    logger.info(f"Scored text ({len(request_body.text)} chars): {scored.result.level.value}")
    return {
        "signals": {category: _signals_payload(group) for category, group in scored.signals.items()},
        "result": _result_payload(scored.result),
    }


@app.post("/analyze/page")
async def analyze_page(request_body: PageRequest):
    """Score every review on a page plus the page as a whole"""
    start_time = time.time()
    analysis = await run_in_threadpool(get_pipeline().analyze_page, request_body.reviews, request_body.histogram)
    processing_time = time.time() - start_time
    metrics.record_request(
        success=True,
        processing_time=processing_time,
        level=analysis.overall.level.value,
        reviews=len(request_body.reviews),
    )
    logger.info(f"Scored page: {len(request_body.reviews)} reviews in {processing_time:.3f}s")
    return {
        "overall": _result_payload(analysis.overall),
        "reviews": [
            {"index": review.index, "result": _result_payload(review.result)}
            for review in analysis.reviews
        ],
        "batch_signals": _signals_payload(analysis.batch_signals),
        "shared_phrases": [phrase.model_dump() for phrase in analysis.shared_phrases],
        "processing_time": round(processing_time, 4),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8001,
        reload=True,
        log_level="info"
    )
