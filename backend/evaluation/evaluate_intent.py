"""
Eval script for checking intent detection, coarse filter extraction, location detection and router latency.

Usage: python -m evaluation.evaluate_intent --mode all
"""
import os
import json
import time
import argparse
from typing import List, Dict, Any
from datetime import datetime
import pandas as pd

from home254.router import detect_intent, build_coarse_filter, detect_location
from evaluation.metrics import aggregate_metrics, confusion_matrix_metrics, field_accuracy

FILTER_FIELDS = ["category", "propertyType", "location", "minBedrooms", "maxPrice", "isFurnished"]


class IntentEvaluator:
    def __init__(self, golden_queries_path: str = "evaluation/datasets/golden_queries.json"):
        print(f"[Evaluator] Loading golden queries from {golden_queries_path}")
        with open(golden_queries_path, 'r') as f:
            self.golden_data = json.load(f)
        self.golden_queries_path = golden_queries_path

        self.results = {}
        self.start_time = None
        self.end_time = None

    def evaluate_intent_classification(self) -> Dict[str, Any]:
        """
        Evaluate property vs other detection and category accuracy.

        Returns:
            Dict with accuracy, confusion matrix and category accuracy
        """
        print("\n" + "=" * 60)
        print("EVALUATING INTENT CLASSIFICATION")
        print("=" * 60)

        test_cases = self.golden_data.get("intent_classification", [])
        y_true = []
        y_pred = []
        expected_categories = []
        predicted_categories = []
        per_query = []

        for case in test_cases:
            query_id = case["query_id"]
            query = case["query"]
            expected = "PROPERTY" if case["expected_property"] else "OTHER"

            intent = detect_intent(query)
            predicted = "PROPERTY" if intent.is_property_related else "OTHER"

            y_true.append(expected)
            y_pred.append(predicted)
            if "expected_category" in case:
                expected_categories.append(case["expected_category"])
                predicted_categories.append(intent.category)

            status = "✓" if predicted == expected else "✗"
            print(f"[{query_id}] {status} Query: '{query}'")
            print(f"          Expected: {expected}, Predicted: {predicted} "
                  f"(confidence={intent.confidence:.2f}, category={intent.category})")
            per_query.append({"confidence": intent.confidence})

        labels = ["PROPERTY", "OTHER"]
        confusion_metrics = confusion_matrix_metrics(y_true, y_pred, labels)
        category_accuracy = field_accuracy(expected_categories, predicted_categories)

        print("\n" + "-" * 60)
        print(f"INTENT CLASSIFICATION ACCURACY: {confusion_metrics.get('accuracy', 0.0):.4f}")
        print(f"CATEGORY ACCURACY: {category_accuracy:.4f}")
        print("-" * 60)
        print("\nPer-class metrics:")
        for label, stats in confusion_metrics.get("per_class", {}).items():
            print(f"  {label:10s}: P={stats['precision']:.3f}, "
                  f"R={stats['recall']:.3f}, "
                  f"F1={stats['f1']:.3f}, "
                  f"support={stats['support']}")

        return {
            "accuracy": confusion_metrics.get("accuracy", 0.0),
            "per_class": confusion_metrics.get("per_class", {}),
            "confusion_matrix": confusion_metrics.get("confusion_matrix", []),
            "labels": labels,
            "category_accuracy": category_accuracy,
            "confidence": aggregate_metrics(per_query).get("confidence", {}),
            "test_cases": len(test_cases)
        }

    def evaluate_filter_extraction(self) -> Dict[str, Any]:
        """
        Evaluate coarse filter extraction accuracy.

        Returns:
            Dict with per field and overall accuracy
        """
        print("\n" + "=" * 60)
        print("EVALUATING FILTER EXTRACTION")
        print("=" * 60)

        test_cases = self.golden_data.get("filter_extraction", [])
        results = []

        for case in test_cases:
            query_id = case["query_id"]
            query = case["query"]
            expected = case["expected_filters"]

            extracted = build_coarse_filter(query)
            extracted_dict = extracted.model_dump(by_alias=True, exclude_none=True)

            # Only fields named in the golden case are checked
            matches = {}
            for key in FILTER_FIELDS:
                if key in expected:
                    matches[key] = (expected[key] == extracted_dict.get(key))

            all_correct = all(matches.values()) if matches else True

            status = "✓" if all_correct else "✗"
            print(f"[{query_id}] {status} Query: '{query}'")
            print(f"          Expected: {expected}")
            print(f"          Extracted: {extracted_dict}")

            results.append({
                "query_id": query_id,
                "query": query,
                "expected": expected,
                "extracted": extracted_dict,
                "matches": matches,
                "all_correct": all_correct
            })

        accuracies = {}
        for ftype in FILTER_FIELDS:
            total = sum(1 for r in results if ftype in r["expected"])
            correct = sum(1 for r in results if r["matches"].get(ftype, False))
            accuracies[ftype] = correct / total if total > 0 else 1.0

        overall_accuracy = sum(r["all_correct"] for r in results) / len(results) if results else 0.0

        print("\n" + "-" * 60)
        print(f"FILTER EXTRACTION OVERALL ACCURACY: {overall_accuracy:.4f}")
        print("-" * 60)
        print("Per-filter accuracy:")
        for ftype, acc in accuracies.items():
            print(f"  {ftype:15s}: {acc:.4f}")

        return {
            "overall_accuracy": overall_accuracy,
            "per_filter_accuracy": accuracies,
            "per_query": results,
            "num_queries": len(test_cases)
        }

    def evaluate_location_detection(self) -> Dict[str, Any]:
        """Exact match accuracy of the gazetteer lookup"""
        print("\n" + "=" * 60)
        print("EVALUATING LOCATION DETECTION")
        print("=" * 60)

        test_cases = self.golden_data.get("location_detection", [])
        expected = [case.get("expected_location") for case in test_cases]
        predicted = [detect_location(case["query"]) for case in test_cases]

        for case, exp, pred in zip(test_cases, expected, predicted):
            status = "✓" if exp == pred else "✗"
            print(f"[{case['query_id']}] {status} '{case['query']}' -> {pred} (expected {exp})")

        accuracy = field_accuracy(expected, predicted)
        print("\n" + "-" * 60)
        print(f"LOCATION ACCURACY: {accuracy:.4f}")
        print("-" * 60)
        return {"accuracy": accuracy, "num_queries": len(test_cases)}

    def benchmark_performance(self, num_iterations: int = 200) -> Dict[str, Any]:
        """
        Benchmark router latency.

        Args:
            num_iterations: Number of detect + extract iterations to run

        Returns:
            Dict with latency percentiles and throughput
        """
        print("\n" + "=" * 60)
        print(f"BENCHMARKING PERFORMANCE ({num_iterations} iterations)")
        print("=" * 60)

        test_queries = [
            "looking for a 3 bedroom apartment in Karen for rent",
            "furnished bungalow for sale in Kiambu",
            "quarter acre plot in Kitengela under 2M",
            "office space to let in Westlands",
        ]

        latencies = []
        for i in range(num_iterations):
            query = test_queries[i % len(test_queries)]
            start = time.perf_counter()
            build_coarse_filter(query, detect_intent(query))
            latencies.append((time.perf_counter() - start) * 1000)  # Convert to ms

        latencies_array = pd.Series(latencies)
        mean_ms = float(latencies_array.mean())

        results = {
            "mean_latency_ms": mean_ms,
            "std_latency_ms": float(latencies_array.std()),
            "p50_latency_ms": float(latencies_array.quantile(0.50)),
            "p95_latency_ms": float(latencies_array.quantile(0.95)),
            "p99_latency_ms": float(latencies_array.quantile(0.99)),
            "min_latency_ms": float(latencies_array.min()),
            "max_latency_ms": float(latencies_array.max()),
            "throughput_qps": 1000.0 / mean_ms if mean_ms > 0 else 0.0,
            "num_iterations": num_iterations
        }

        print(f"\nLatency (ms):")
        print(f"  Mean:  {results['mean_latency_ms']:.3f}")
        print(f"  p50:   {results['p50_latency_ms']:.3f}")
        print(f"  p95:   {results['p95_latency_ms']:.3f}")
        print(f"\nThroughput: {results['throughput_qps']:.1f} queries/sec")

        return results

    def run_mode(self, mode: str) -> Dict[str, Any]:
        """Run one evaluation mode and stamp metadata on the results"""
        self.start_time = datetime.now()

        if mode == "all":
            results = {}
            for name, fn in [
                ("intent_classification", self.evaluate_intent_classification),
                ("filter_extraction", self.evaluate_filter_extraction),
                ("location_detection", self.evaluate_location_detection),
                ("performance", self.benchmark_performance),
            ]:
                try:
                    results[name] = fn()
                except (KeyError, TypeError, ValueError) as e:
                    print(f"\nERROR in {name}: {e}")
                    results[name] = {"error": str(e)}
        elif mode == "intent":
            results = {"intent_classification": self.evaluate_intent_classification()}
        elif mode == "filters":
            results = {"filter_extraction": self.evaluate_filter_extraction()}
        elif mode == "location":
            results = {"location_detection": self.evaluate_location_detection()}
        elif mode == "performance":
            results = {"performance": self.benchmark_performance()}
        elif mode == "quick":
            results = {
                "intent_classification": self.evaluate_intent_classification(),
                "filter_extraction": self.evaluate_filter_extraction(),
            }
        else:
            raise ValueError(f"Unknown mode: {mode}")

        self.end_time = datetime.now()
        results["metadata"] = {
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration_seconds": (self.end_time - self.start_time).total_seconds(),
            "golden_queries_path": self.golden_queries_path,
            "mode": mode
        }
        self.results = results
        return results

    def save_results(self, output_path: str = "evaluation/results/latest.json"):
        """
        Save evaluation results to JSON file.

        Args:
            output_path: Path to save results
        """
        directory = os.path.dirname(output_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(output_path, 'w') as f:
            json.dump(self.results, f, indent=2)

        print(f"\n[Evaluator] Results saved to {output_path}")


def main():
    parser = argparse.ArgumentParser(description="Evaluate the Home254 intent router")
    parser.add_argument("--mode", type=str, default="all",
                        choices=["all", "intent", "filters", "location", "performance", "quick"],
                        help="Evaluation mode to run")
    parser.add_argument("--golden", type=str,
                        default="evaluation/datasets/golden_queries.json",
                        help="Path to golden queries JSON")
    parser.add_argument("--output", type=str,
                        default="evaluation/results/latest.json",
                        help="Path to save results JSON")

    args = parser.parse_args()

    evaluator = IntentEvaluator(golden_queries_path=args.golden)
    evaluator.run_mode(args.mode)
    evaluator.save_results(args.output)


if __name__ == "__main__":
    main()
