"""Proxy API: forwards chat turns to the external agent and exposes the stored transactions."""

import logging
import os
from contextlib import asynccontextmanager
from typing import Dict, List

from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from agent_client import AgentError, call_agent
from chat import AGENT_ID
from dashboard import daily_totals, expenses_by_category, summarize
from database import get_db, init_db
from storage import LocalStorage
from transactions import Transaction, load_transactions

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Storage tables ready")
    yield


app = FastAPI(title="Budget Tracker API", version="0.1.0", lifespan=lifespan)

# CORS configuration
allowed_origins = os.getenv("ALLOWED_ORIGINS", "*").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


def get_storage(db: Session = Depends(get_db)) -> LocalStorage:
    return LocalStorage(db)


class AgentRequest(BaseModel):
    message: str
    agent_id: str = AGENT_ID


@app.post("/api/agent")
def agent_proxy(req: AgentRequest):
    if not req.message.strip():
        return JSONResponse(status_code=400, content={"success": False, "error": "Message is required"})

    try:
        return call_agent(req.message, req.agent_id)
    except AgentError as exc:
        logger.error("Agent proxy failed: %s", exc)
        status = exc.status_code if exc.status_code and exc.status_code >= 400 else 502
        return JSONResponse(status_code=status, content={"success": False, "error": str(exc)})


class SummaryResponse(BaseModel):
    income: float
    expenses: float
    net: float
    count: int
    expenses_by_category: Dict[str, float]
    daily: List[dict] = Field(default_factory=list)


@app.get("/api/transactions", response_model=List[Transaction])
def list_transactions(storage: LocalStorage = Depends(get_storage)):
    return load_transactions(storage)


@app.get("/api/summary", response_model=SummaryResponse)
def get_summary(days: int = Query(7, ge=1, le=90), storage: LocalStorage = Depends(get_storage)):
    txns = load_transactions(storage)
    totals = summarize(txns)
    return SummaryResponse(
        **totals,
        expenses_by_category=expenses_by_category(txns),
        daily=[{**row, "date": row["date"].isoformat()} for row in daily_totals(txns, days=days)],
    )


@app.get("/health")
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api:app", host="0.0.0.0", port=8000, reload=True)
