# embed_bench_reporter/main.py
# run as `python -m embed_bench_reporter.main [config.yaml]` or `embed-bench-report [config.yaml]`;
# without an argument the config.yaml beside this file is used.
from __future__ import annotations
from collections import Counter
from pathlib import Path
import logging
import sys
import yaml

from embed_bench_reporter.core.pipeline import ReloadError, RunBoard, run_pipeline
from embed_bench_reporter.loaders import json_loader

def load_config(cfg_path: Path) -> dict:
    with cfg_path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}

def main(argv: list[str] | None = None) -> int:
    # ---------- config ----------
    here = Path(__file__).resolve().parent
    args = sys.argv[1:] if argv is None else argv
    cfg = load_config(Path(args[0]) if args else here / "config.yaml")

    in_path = Path(cfg["input"]["path"]).resolve()
    recurse = bool(cfg["input"].get("recurse", True))
    out_root = Path(cfg["output"]["root"]).resolve()

    log_cfg = cfg.get("logging") or {}
    verbose = bool(log_cfg.get("verbose", True))
    logging.basicConfig(level=logging.DEBUG if log_cfg.get("debug") else logging.WARNING)
    if verbose:
        print(f"[cfg] input={in_path} (recurse={recurse})")
        print(f"[cfg] output={out_root}")

    # ---------- load ----------
    board = RunBoard()
    try:
        runs = board.reload(lambda: json_loader.load_all(in_path, recurse=recurse))
    except ReloadError:
        print(f"[WARN] {board.last_error}")
        return 1

    if not runs:
        print(f"[INFO] No run files found under: {in_path}")
        return 0
    if verbose:
        kinds = Counter(r.implementation for r in runs)
        print(f"[load] {len(runs)} run(s) → {dict(sorted(kinds.items()))}")

    # ---------- reports ----------
    run_pipeline(runs, cfg, out_root)
    if verbose:
        print(f"[summary] finished with {len(runs)} run(s)")
    return 0

if __name__ == "__main__":
    sys.exit(main())
