import json
from pathlib import Path

from evaluation.metrics import confusion_matrix_metrics, aggregate_metrics, field_accuracy
from evaluation.evaluate_intent import IntentEvaluator
from evaluation import api_endpoints

GOLDEN = Path(__file__).resolve().parent.parent / "evaluation" / "datasets" / "golden_queries.json"


def test_confusion_matrix_metrics():
    out = confusion_matrix_metrics(["PROPERTY", "PROPERTY", "OTHER"], ["PROPERTY", "OTHER", "OTHER"],
                                   ["PROPERTY", "OTHER"])
    assert abs(out["accuracy"] - 2 / 3) < 1e-9
    assert out["confusion_matrix"] == [[1, 1], [0, 1]]
    assert out["per_class"]["PROPERTY"]["precision"] == 1.0
    assert out["per_class"]["PROPERTY"]["recall"] == 0.5
    assert out["per_class"]["OTHER"]["support"] == 1


def test_confusion_matrix_mismatched_lengths():
    assert confusion_matrix_metrics(["A"], [], ["A"]) == {}


def test_aggregate_and_field_accuracy():
    agg = aggregate_metrics([{"confidence": 0.2}, {"confidence": 0.6}])
    assert abs(agg["confidence"]["mean"] - 0.4) < 1e-9
    assert field_accuracy(["Karen", None], ["Karen", "Kiambu"]) == 0.5
    assert field_accuracy([], []) == 0.0


def test_evaluator_runs_on_golden_set(tmp_path):
    evaluator = IntentEvaluator(golden_queries_path=str(GOLDEN))
    results = evaluator.run_mode("quick")
    assert set(results) == {"intent_classification", "filter_extraction", "metadata"}
    assert 0.0 <= results["intent_classification"]["accuracy"] <= 1.0
    assert results["filter_extraction"]["num_queries"] == 7

    out = tmp_path / "latest.json"
    evaluator.save_results(str(out))
    assert json.loads(out.read_text())["metadata"]["mode"] == "quick"


def test_location_detection_on_golden_set():
    evaluator = IntentEvaluator(golden_queries_path=str(GOLDEN))
    assert evaluator.evaluate_location_detection()["accuracy"] == 1.0


def _new_job(job_id, mode):
    api_endpoints._running_evals[job_id] = {
        "job_id": job_id, "status": "pending", "mode": mode,
        "started_at": None, "completed_at": None, "error": None,
    }
    return api_endpoints._running_evals[job_id]


def test_eval_job_marks_failure_on_any_error(tmp_path, monkeypatch):
    monkeypatch.setattr(api_endpoints, "RESULTS_DIR", tmp_path)
    bad = tmp_path / "golden.json"
    bad.write_text(json.dumps([{"query": "flat in Karen"}]))
    job = _new_job("badjob", "intent")

    api_endpoints.run_evaluation_task("badjob", "intent", str(bad))
    assert job["status"] == "failed"
    assert job["error"]
    assert job["completed_at"] is not None


def test_eval_job_writes_results(tmp_path, monkeypatch):
    monkeypatch.setattr(api_endpoints, "RESULTS_DIR", tmp_path)
    job = _new_job("goodjob", "quick")

    api_endpoints.run_evaluation_task("goodjob", "quick", str(GOLDEN))
    assert job["status"] == "completed"
    assert job["completed_at"] is not None
    assert json.loads((tmp_path / "latest.json").read_text())["metadata"]["mode"] == "quick"
