import argparse
import faulthandler
import logging
import os
import sys
import traceback
from typing import Optional

import numpy as np
from PyQt6.QtWidgets import QApplication

from sharechart.core.demo_data import demo_periods, generate_demo_ohlc
from sharechart.ui.main_window import MainWindow

_FAULT_LOG_HANDLE = None


def _install_exception_logging() -> None:
    log_path = os.path.join(os.path.dirname(__file__), "exception.log")
    def _hook(exc_type, exc_value, exc_tb):
        try:
            with open(log_path, "a", encoding="utf-8") as handle:
                handle.write("\n=== Unhandled Exception ===\n")
                traceback.print_exception(exc_type, exc_value, exc_tb, file=handle)
        except Exception:
            pass
        logging.getLogger("sharechart").critical("Unhandled exception", exc_info=(exc_type, exc_value, exc_tb))
    sys.excepthook = _hook
    try:
        import threading
        def _thread_hook(args):
            _hook(args.exc_type, args.exc_value, args.exc_traceback)
        threading.excepthook = _thread_hook
    except Exception:
        pass


def demo_loader(base_price: float, seed: Optional[int] = None, limit: int = 100):
    def _load(timeframe: str):
        # Seed per timeframe so switching back shows the same candles.
        rng = np.random.default_rng(None if seed is None else [seed, sum(map(ord, timeframe))])
        return generate_demo_ohlc(base_price, demo_periods(timeframe, limit), rng=rng)
    return _load


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Content-share price chart with demo data.")
    ap.add_argument("--base-price", type=float, default=25.0, help="Starting price of the demo walk (default: 25)")
    ap.add_argument("--seed", type=int, default=None, help="RNG seed for reproducible demo candles")
    ap.add_argument("--limit", type=int, default=100, help="Maximum buckets per timeframe (default: 100)")
    ap.add_argument("--log-level", default="INFO")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        log_path = os.path.join(os.path.dirname(__file__), "faulthandler.log")
        # Keep the handle alive for the process lifetime; faulthandler may write later.
        global _FAULT_LOG_HANDLE
        _FAULT_LOG_HANDLE = open(log_path, "w", encoding="utf-8")
        _FAULT_LOG_HANDLE.write(f"pid={os.getpid()}\n")
        _FAULT_LOG_HANDLE.flush()
        faulthandler.enable(_FAULT_LOG_HANDLE, all_threads=True)
    except Exception:
        faulthandler.enable(all_threads=True)
    _install_exception_logging()
    app = QApplication(sys.argv[:1])
    window = MainWindow(demo_loader(args.base_price, seed=args.seed, limit=args.limit))
    window.show()
    return app.exec()


if __name__ == '__main__':
    raise SystemExit(main())
