import contextlib
import io
import json
from pathlib import Path
import tempfile
import unittest

import numpy as np
import pandas as pd
from scipy.io import loadmat
import yaml

from embed_bench_reporter.core.model import RawRun, RunRecord
from embed_bench_reporter.core.pipeline import ReloadError, RunBoard, run_pipeline
from embed_bench_reporter.core.view import filter_runs, prepare_view, summarize_view
from embed_bench_reporter.loaders import json_loader
from embed_bench_reporter.main import main
from embed_bench_reporter.utils.detect import discover_inputs


def _run(impl, instances, ts, **metrics):
    return RunRecord(file_label=f"{impl}-{instances}-instances-{ts}.json",
                     implementation=impl, instances=instances, timestamp=ts, **metrics)


def _collection():
    return (
        _run("iframe", 5, 40, load_time=100),
        _run("web-component", 5, 30, load_time=80),
        _run("unknown", 1, 20, load_time=10),
        _run("iframe", 1, 10, load_time=120),
    )


def _write_run(folder: Path, name: str, payload) -> Path:
    path = folder / name
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


class ViewFilterTests(unittest.TestCase):
    def test_wildcards_return_everything_in_order(self):
        runs = _collection()
        self.assertEqual(runs, filter_runs(runs, "all", "all"))

    def test_both_selectors_apply(self):
        runs = _collection()
        self.assertEqual([40, 10], [r.timestamp for r in filter_runs(runs, "iframe", "all")])
        self.assertEqual([40], [r.timestamp for r in filter_runs(runs, "iframe", 5)])
        self.assertEqual([20], [r.timestamp for r in filter_runs(runs, "unknown", "all")])
        self.assertEqual((), filter_runs(runs, "web-component", 1))

    def test_idempotent(self):
        runs = _collection()
        self.assertEqual(filter_runs(runs, "iframe", 1), filter_runs(runs, "iframe", 1))

    def test_invalid_selectors(self):
        with self.assertRaises(ValueError):
            filter_runs(_collection(), "svelte", "all")
        with self.assertRaises(ValueError):
            filter_runs(_collection(), "all", "5")

    def test_prepare_view_from_config(self):
        view = prepare_view({"view": {"implementation": "IFrame", "instances": "5"}})
        self.assertEqual(("iframe", 5), (view.implementation, view.instances))
        default = prepare_view({})
        self.assertEqual(("all", "all"), (default.implementation, default.instances))
        with self.assertRaises(ValueError):
            prepare_view({"view": {"instances": "many"}})

    def test_prepare_view_accepts_float_like_counts(self):
        self.assertEqual(5, prepare_view({"view": {"instances": 5.0}}).instances)
        self.assertEqual(10, prepare_view({"view": {"instances": "10.0"}}).instances)
        self.assertEqual("all", prepare_view({"view": None}).instances)

    def test_summary_over_filtered_rows(self):
        summary = summarize_view(filter_runs(_collection(), "iframe", "all"))
        self.assertEqual(["load_time", "fcp", "avg_mem_mb", "avg_fps"], list(summary))
        self.assertEqual(110, summary["load_time"].p50)
        self.assertEqual(2, summary["load_time"].count)
        self.assertEqual(0, summary["fcp"].count)
        self.assertIsNone(summary["fcp"].p50)


class RunStoreTests(unittest.TestCase):
    def test_discovers_json_files_only(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "nested").mkdir()
            _write_run(root, "iframe-1-instances-1.json", {})
            _write_run(root / "nested", "web-component-1-instances-2.json", {})
            (root / "index.html").write_text("<html></html>", encoding="utf-8")

            self.assertEqual(2, len(discover_inputs(root, recurse=True)))
            self.assertEqual(1, len(discover_inputs(root, recurse=False)))
            self.assertEqual(["iframe-1-instances-1.json", "web-component-1-instances-2.json"],
                             sorted(r.source_name for r in json_loader.load_all(root)))

    def test_invalid_json_fails_the_batch(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _write_run(root, "iframe-1-instances-1.json", {"loadTime": 5})
            (root / "iframe-1-instances-2.json").write_text("{not json", encoding="utf-8")
            with self.assertRaises(json_loader.RunStoreError):
                json_loader.load_all(root)

    def test_missing_store(self):
        with self.assertRaises(json_loader.RunStoreError):
            json_loader.load_all(Path("/nonexistent/run/store"))


class ReloadTests(unittest.TestCase):
    def test_reload_replaces_collection(self):
        board = RunBoard()
        self.assertFalse(board.has_data)
        fresh = board.reload(lambda: [RawRun("iframe-1-instances-1.json", {}),
                                      RawRun("iframe-1-instances-9.json", {})])
        self.assertEqual([9, 1], [r.timestamp for r in fresh])
        self.assertIs(fresh, board.collection)

        board.reload(lambda: [RawRun("web-component-3-instances-4.json", {})])
        self.assertEqual(["web-component"], [r.implementation for r in board.collection])

    def test_failed_reload_keeps_previous_collection(self):
        board = RunBoard()
        board.reload(lambda: [RawRun("iframe-1-instances-1.json", {})])
        before = board.collection

        def broken():
            raise json_loader.RunStoreError("store unreachable")

        with self.assertRaises(ReloadError):
            board.reload(broken)
        self.assertIs(before, board.collection)
        self.assertIn("store unreachable", board.last_error)

        board.reload(lambda: [])
        self.assertIsNone(board.last_error)
        self.assertFalse(board.has_data)


class PipelineTests(unittest.TestCase):
    def test_pipeline_writes_reports_from_run_files(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            data = Path(tmpdir) / "data"
            data.mkdir()
            _write_run(data, "iframe-5-instances-100.json", {"loadTime": 100, "memoryUsage": [1048576]})
            _write_run(data, "iframe-5-instances-200.json", {"loadTime": 120})
            _write_run(data, "web-component-5-instances-300.json", {"loadTime": 80})

            board = RunBoard()
            runs = board.reload(lambda: json_loader.load_all(data))
            out_root = Path(tmpdir) / "out"
            cfg = {"view": {"implementation": "iframe"}, "reports": {"format": "csv"}}
            run_pipeline(runs, cfg, out_root)

            df_runs = pd.read_csv(out_root / "runs.csv")
            self.assertEqual([200, 100], df_runs["timestamp"].tolist())

            df_summary = pd.read_csv(out_root / "summary.csv")
            load = df_summary[df_summary["metric"] == "load_time"].iloc[0]
            self.assertEqual(110, load["p50"])
            self.assertEqual(2, load["count"])

            df_cmp = pd.read_csv(out_root / "comparison.csv")
            self.assertEqual(4, len(df_cmp))
            first = df_cmp.iloc[0]
            self.assertEqual("load_time", first["metric"])
            self.assertEqual(30, first["delta"])
            self.assertAlmostEqual(37.5, first["delta_percent"])
            self.assertFalse((out_root / "comparison.mat").exists())

    def test_mat_format(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            out_root = Path(tmpdir)
            run_pipeline(_collection(), {"reports": {"format": "both"}}, out_root)
            for name in ("runs", "summary", "comparison"):
                self.assertTrue((out_root / f"{name}.csv").exists(), f"{name}.csv missing")
                self.assertTrue((out_root / f"{name}.mat").exists(), f"{name}.mat missing")

    def test_unknown_format_is_rejected(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(ValueError):
                run_pipeline(_collection(), {"reports": {"format": "xlsx"}}, Path(tmpdir))

    def test_far_future_timestamp_leaves_captured_at_blank(self):
        runs = RunBoard().reload(lambda: [RawRun("iframe-5-instances-99999999999999999.json", {"loadTime": 7}),
                                          RawRun("iframe-5-instances-1700000000000.json", {"loadTime": 9})])
        with tempfile.TemporaryDirectory() as tmpdir:
            out_root = Path(tmpdir)
            run_pipeline(runs, {"reports": {"format": "both"}}, out_root)

            df_runs = pd.read_csv(out_root / "runs.csv", keep_default_na=False)
            self.assertEqual([99999999999999999, 1700000000000], df_runs["timestamp"].tolist())
            self.assertEqual("", df_runs["captured_at"].iloc[0])
            self.assertEqual("2023-11-14 22:13:20", df_runs["captured_at"].iloc[1])
            self.assertTrue((out_root / "runs.mat").exists())

    def test_empty_view_replaces_earlier_runs_report(self):
        runs = (_run("iframe", 5, 40, load_time=100),)
        with tempfile.TemporaryDirectory() as tmpdir:
            out_root = Path(tmpdir)
            run_pipeline(runs, {"reports": {"format": "both"}}, out_root)
            self.assertEqual(1, len(pd.read_csv(out_root / "runs.csv")))
            self.assertTrue((out_root / "runs.mat").exists())

            cfg = {"view": {"implementation": "web-component"}, "reports": {"format": "both"}}
            run_pipeline(runs, cfg, out_root)
            df_runs = pd.read_csv(out_root / "runs.csv")
            self.assertEqual(0, len(df_runs))
            self.assertIn("implementation", df_runs.columns)
            self.assertFalse((out_root / "runs.mat").exists())

    def test_empty_config_sections(self):
        cfg = yaml.safe_load("view:\nreports:\nlogging:\n")
        with tempfile.TemporaryDirectory() as tmpdir:
            run_pipeline(_collection(), cfg, Path(tmpdir))
            self.assertTrue((Path(tmpdir) / "comparison.csv").exists())

    def test_mat_missing_values_are_nan(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            out_root = Path(tmpdir)
            run_pipeline(_collection(), {"reports": {"format": "mat"}}, out_root)
            self.assertFalse((out_root / "runs.csv").exists())

            runs_mat = loadmat(out_root / "runs.mat", squeeze_me=True, struct_as_record=False)["runs"]
            self.assertTrue(np.isnan(np.atleast_1d(runs_mat.fcp_ms)).all())
            self.assertEqual([100.0, 80.0, 10.0, 120.0], np.atleast_1d(runs_mat.load_time_ms).tolist())
            self.assertEqual("iframe", np.atleast_1d(runs_mat.implementation)[0])

            cmp_mat = loadmat(out_root / "comparison.mat", squeeze_me=True, struct_as_record=False)["comparison"]
            deltas = np.atleast_1d(cmp_mat.delta)
            # instances 1 has no web-component run
            self.assertTrue(np.isnan(deltas[:4]).all())
            self.assertEqual(20.0, deltas[4])


class MainEntryTests(unittest.TestCase):
    def _run_main(self, tmpdir: Path, input_path: Path, extra=None):
        cfg = {"input": {"path": str(input_path)}, "output": {"root": str(tmpdir / "out")}, "logging": None}
        cfg.update(extra or {})
        cfg_path = tmpdir / "config.yaml"
        cfg_path.write_text(yaml.safe_dump(cfg), encoding="utf-8")
        buf = io.StringIO()
        with contextlib.redirect_stdout(buf):
            code = main([str(cfg_path)])
        return code, buf.getvalue()

    def test_failed_reload_exits_with_status_1(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            code, out = self._run_main(tmp, tmp / "missing")
            self.assertEqual(1, code)
            self.assertIn("[WARN] Error loading data:", out)
            self.assertFalse((tmp / "out").exists())

    def test_empty_store_exits_cleanly(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            (tmp / "data").mkdir()
            code, out = self._run_main(tmp, tmp / "data")
            self.assertEqual(0, code)
            self.assertIn("[INFO] No run files found", out)

    def test_writes_reports_from_config(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            data = tmp / "data"
            data.mkdir()
            _write_run(data, "iframe-5-instances-100.json", {"loadTime": 100})
            _write_run(data, "web-component-5-instances-200.json", {"loadTime": 80})
            code, out = self._run_main(tmp, data, {"view": {"instances": 5}, "reports": {"format": "csv"}})
            self.assertEqual(0, code)
            self.assertIn("[summary] finished with 2 run(s)", out)
            df_cmp = pd.read_csv(tmp / "out" / "comparison.csv")
            self.assertEqual(20, df_cmp.iloc[0]["delta"])
