"""
FastAPI Backend for Life K-line (BaZi chart + fortune curve)

Run with: uvicorn life_kline.main:app --reload
"""
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, field_validator

from .calendar_service import CalendarService, default_calendar
from .llm_client import (
    NarrativeAuthError,
    NarrativeConfig,
    NarrativeError,
    NarrativeRateLimitError,
)
from .logic import LifeReport, build_life_report
from .narrative import TOPICS, UnsafeInputError, run_topic
from .pillars import Gender

logger = logging.getLogger(__name__)

# --- Pydantic Models for Request/Response ---

class BirthData(BaseModel):
    """Birth data for the chart."""
    birth_date: str = Field(..., description="Date of birth, YYYY-MM-DD (local civil time)")
    birth_time: str = Field(..., description="Time of birth, HH:mm 24-hour clock")
    gender: str = Field(..., description="Gender (male/female/m/f/男/女)")

    @field_validator("gender")
    @classmethod
    def normalize_gender(cls, value: str) -> str:
        return Gender.parse(value).value


class AnalysisRequest(BaseModel):
    """Request for /api/analysis endpoint."""
    user_data: BirthData
    topic: str = Field("analysis", description=f"Narrative topic: {' | '.join(TOPICS)}")
    birth_location: Optional[str] = Field(None, description="Birthplace, quoted in the analysis prompt")
    life_events: Optional[str] = Field(None, description="Key life events, quoted in the analysis prompt")


class KlinePoint(BaseModel):
    age: int = Field(..., ge=0, le=100)
    year: int
    score: int = Field(..., ge=0, le=100)
    trend: str = Field(..., description="up / down")
    dayun: str = Field(..., description="Active luck pillar (大运)")
    liunian: str = Field(..., description="Annual pillar (流年)")
    description: str


class PeakWindow(BaseModel):
    start_age: int
    end_age: int
    peak_score: int
    label: str


class KlineResponse(BaseModel):
    """Response for /api/kline endpoint."""
    points: List[KlinePoint]
    peak: Optional[PeakWindow] = Field(None, description="Highest run of scores above 80, if any")
    current_score: int = Field(..., description="Score at age 30")


class ChartResponse(BaseModel):
    """Response for /api/chart endpoint."""
    gender: str
    bazi: Dict[str, Any] = Field(..., description="Four pillars and day master")
    elements: Dict[str, Any] = Field(..., description="Five-element scores and body strength (身强/身弱)")
    dayun: Dict[str, Any] = Field(..., description="Luck pillars (大运), direction and onset age")
    kline: KlineResponse
    career: Dict[str, Any] = Field(..., description="Career and fashion hints by element")


class AnalysisResponse(BaseModel):
    """Response for /api/analysis endpoint."""
    topic: str
    result: Dict[str, Any]


# --- FastAPI App Initialization ---

def configure_logging() -> None:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield


app = FastAPI(
    title="人生K线 API",
    description="八字排盘、五行能量、大运与人生K线，以及大模型命理解读",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Dependencies ---

def get_calendar() -> CalendarService:
    return default_calendar()


def get_narrative_config() -> NarrativeConfig:
    try:
        return NarrativeConfig.from_env()
    except NarrativeError as e:
        raise HTTPException(status_code=500, detail=str(e))


def load_report(data: BirthData, calendar: CalendarService) -> LifeReport:
    report = build_life_report(data.birth_date, data.birth_time, data.gender, calendar)
    if report is None:
        raise HTTPException(status_code=400, detail="Invalid birth date/time; expected YYYY-MM-DD and HH:mm")
    return report


# --- API Endpoints ---

@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "人生K线 API is running"}


@app.post("/api/chart", response_model=ChartResponse)
def get_chart(data: BirthData, calendar: CalendarService = Depends(get_calendar)):
    """Full report: pillars, element scores, luck pillars, K-line and career hints."""
    return load_report(data, calendar).to_dict()


@app.post("/api/kline", response_model=KlineResponse)
def get_kline(data: BirthData, calendar: CalendarService = Depends(get_calendar)):
    """Only the 101-point curve and its peak window."""
    return load_report(data, calendar).kline.to_dict()


@app.post("/api/analysis", response_model=AnalysisResponse)
def get_analysis(
    request: AnalysisRequest,
    calendar: CalendarService = Depends(get_calendar),
    config: NarrativeConfig = Depends(get_narrative_config),
):
    """
    LLM interpretation for one topic.

    Declared sync so the blocking provider call runs in the threadpool.
    """
    if request.topic not in TOPICS:
        raise HTTPException(status_code=400, detail=f"Unknown topic: {request.topic}")

    snapshot = load_report(request.user_data, calendar).to_snapshot()
    extra = {}
    if request.topic == "analysis":
        extra = {"birth_location": request.birth_location, "life_events": request.life_events}

    try:
        result = run_topic(request.topic, snapshot, config, **extra)
    except UnsafeInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NarrativeAuthError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except NarrativeRateLimitError as e:
        raise HTTPException(status_code=429, detail=str(e))
    except NarrativeError as e:
        logger.error("Narrative topic %s failed: %s", request.topic, e)
        raise HTTPException(status_code=502, detail=str(e))

    return AnalysisResponse(topic=request.topic, result=result)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
