"""Eval API endpoints"""
from fastapi import APIRouter, BackgroundTasks, HTTPException
from pydantic import BaseModel
from typing import Optional, Dict, Any
import json
import logging
from pathlib import Path
from datetime import datetime
import uuid

from evaluation.evaluate_intent import IntentEvaluator

router = APIRouter()
logger = logging.getLogger(__name__)

RESULTS_DIR = Path("evaluation/results")

_running_evals: Dict[str, Dict[str, Any]] = {}


class EvaluationRequest(BaseModel):
    mode: str = "all"
    golden_queries_path: Optional[str] = "evaluation/datasets/golden_queries.json"


class EvaluationStatus(BaseModel):
    job_id: str
    status: str
    mode: str
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    error: Optional[str] = None


def run_evaluation_task(job_id: str, mode: str, golden_queries_path: str):
    """Run eval in background"""
    job = _running_evals[job_id]
    try:
        job["status"] = "running"
        job["started_at"] = datetime.now().isoformat()

        evaluator = IntentEvaluator(golden_queries_path=golden_queries_path)
        evaluator.run_mode(mode)

        output_path = str(RESULTS_DIR / f"{job_id}.json")
        evaluator.save_results(output_path)
        # Also update latest
        evaluator.save_results(str(RESULTS_DIR / "latest.json"))

        job["status"] = "completed"
        job["results_path"] = output_path
    except Exception as e:
        # Background task, nobody else will see the error
        logger.exception("Evaluation job %s failed", job_id)
        job["status"] = "failed"
        job["error"] = str(e)
    finally:
        job["completed_at"] = datetime.now().isoformat()


@router.post("/run", response_model=EvaluationStatus)
async def start_evaluation(request: EvaluationRequest, background_tasks: BackgroundTasks):
    """
    Start an evaluation job in the background.

    Returns job_id to track progress.
    """
    job_id = str(uuid.uuid4())[:8]

    _running_evals[job_id] = {
        "job_id": job_id,
        "status": "pending",
        "mode": request.mode,
        "started_at": None,
        "completed_at": None,
        "error": None
    }

    background_tasks.add_task(
        run_evaluation_task,
        job_id,
        request.mode,
        request.golden_queries_path
    )

    return EvaluationStatus(**_running_evals[job_id])


@router.get("/status/{job_id}", response_model=EvaluationStatus)
async def get_evaluation_status(job_id: str):
    """Get status of evaluation job."""
    if job_id not in _running_evals:
        raise HTTPException(status_code=404, detail="Job not found")

    return EvaluationStatus(**_running_evals[job_id])


@router.get("/results/latest")
async def get_latest_results():
    """Get most recent evaluation results."""
    results_path = RESULTS_DIR / "latest.json"

    if not results_path.exists():
        raise HTTPException(status_code=404, detail="No evaluation results found. Run an evaluation first.")

    with open(results_path, 'r') as f:
        return json.load(f)


@router.get("/results/{job_id}")
async def get_evaluation_results(job_id: str):
    """Get results of completed evaluation."""
    if job_id not in _running_evals:
        raise HTTPException(status_code=404, detail="Job not found")

    eval_data = _running_evals[job_id]

    if eval_data["status"] != "completed":
        raise HTTPException(status_code=400, detail=f"Evaluation not completed yet (status: {eval_data['status']})")

    results_path = eval_data.get("results_path")
    if not results_path or not Path(results_path).exists():
        raise HTTPException(status_code=404, detail="Results file not found")

    with open(results_path, 'r') as f:
        return json.load(f)


@router.get("/jobs")
async def list_evaluation_jobs():
    """List all evaluation jobs."""
    return {
        "jobs": list(_running_evals.values()),
        "count": len(_running_evals)
    }
