import os
import sys
import tempfile
import unittest
from datetime import datetime, timezone

import numpy as np

# Allow `import sharechart.*` when running from a source checkout.
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from sharechart.core.demo_data import generate_demo_ohlc
from sharechart.core.models import normalize_series
from sharechart.core.shapes import build_geometry
from sharechart.core.tooltip import price_summary


def _rows(count=5):
    now = datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
    return generate_demo_ohlc(25.0, count, now=now, rng=np.random.default_rng(3))


_APP = None


def _app():
    from PyQt6.QtWidgets import QApplication

    # Module-level reference; a collected QApplication takes the process down with it.
    global _APP
    if _APP is None:
        _APP = QApplication.instance() or QApplication([])
    return _APP


class TestChartItemsPaint(unittest.TestCase):
    def test_paint_does_not_crash(self) -> None:
        from PyQt6.QtCore import QRectF
        from PyQt6.QtGui import QImage, QPainter
        from PyQt6.QtWidgets import QStyleOptionGraphicsItem

        from sharechart.ui.charts.candlestick_chart import CandlestickItem
        from sharechart.ui.charts.volume_histogram import VolumeHistogramItem

        app = _app()
        _ = app  # keep reference for the duration of the test

        geometry = build_geometry(normalize_series(_rows(20)))
        candles = CandlestickItem()
        candles.set_geometry(geometry)
        volume = VolumeHistogramItem()
        volume.set_bars(geometry.volume_bars, geometry.layout)

        img = QImage(200, 380, QImage.Format.Format_ARGB32_Premultiplied)
        img.fill(0)
        painter = QPainter(img)
        try:
            opt = QStyleOptionGraphicsItem()
            opt.exposedRect = QRectF(0.0, 0.0, 100.0, 380.0)
            candles.paint(painter, opt, None)
            volume.paint(painter, opt, None)
        finally:
            painter.end()

        self.assertEqual(candles.boundingRect(), QRectF(0.0, 0.0, 100.0, geometry.layout.total_height))
        self.assertEqual(len(volume.bars), 20)
        self.assertEqual(volume.boundingRect().top(), geometry.layout.volume_top)

        candles.set_geometry(None)
        volume.clear()
        self.assertEqual(volume.bars, [])


class TestCandlestickChartHover(unittest.TestCase):
    def test_pointer_over_slot_two(self) -> None:
        import pyqtgraph as pg
        from PyQt6.QtCore import QPointF

        from sharechart.ui.charts.candlestick_chart import CandlestickChart

        app = _app()
        plot_widget = pg.PlotWidget()
        plot_widget.resize(500, 380)
        seen = []
        chart = CandlestickChart(plot_widget, on_hover=seen.append)
        series = normalize_series(_rows(5))
        chart.set_series(series)
        plot_widget.show()
        app.processEvents()

        self.assertIsNotNone(chart.geometry)
        self.assertEqual(len(chart.geometry.candles), 5)
        self.assertEqual(len(chart.price_labels), chart.layout.grid_levels)

        rect = plot_widget.getViewBox().sceneBoundingRect()
        if rect.width() <= 0 or rect.height() <= 0:
            plot_widget.close()
            self.skipTest("view box has no size on this platform")

        chart._on_mouse_moved(QPointF(rect.left() + rect.width() * 0.45, rect.top() + rect.height() * 0.5))
        self.assertIsNotNone(chart.selection)
        self.assertEqual(chart.selection.index, 2)
        self.assertIs(chart.selection.record, series[2])
        self.assertEqual(seen[-1].index, 2)
        self.assertIsNotNone(chart.tooltip)
        self.assertTrue(chart.hover_label.isVisible())

        chart.clear_hover()
        self.assertIsNone(chart.selection)
        self.assertIsNone(chart.tooltip)
        self.assertIsNone(seen[-1])
        plot_widget.close()

    def test_empty_series_shows_placeholder(self) -> None:
        import pyqtgraph as pg

        from sharechart.ui.charts.candlestick_chart import CandlestickChart

        _app()
        plot_widget = pg.PlotWidget()
        chart = CandlestickChart(plot_widget)
        chart.set_series(normalize_series(_rows(3)))
        chart.set_series(())
        self.assertIsNone(chart.geometry)
        self.assertEqual(chart.price_labels, [])
        self.assertTrue(chart.empty_label.isVisible())

    def test_volume_toggle(self) -> None:
        import pyqtgraph as pg

        from sharechart.ui.charts.candlestick_chart import CandlestickChart

        _app()
        chart = CandlestickChart(pg.PlotWidget())
        chart.set_series(normalize_series(_rows(4)))
        self.assertEqual(len(chart.volume_item.bars), 4)
        chart.set_show_volume(False)
        self.assertEqual(chart.volume_item.bars, [])
        self.assertIsNone(chart.volume_label)
        chart.set_height(400)
        self.assertEqual(chart.layout.height, 400)
        self.assertFalse(chart.layout.show_volume)


class TestChartView(unittest.TestCase):
    def setUp(self) -> None:
        from PyQt6.QtCore import QSettings

        _app()
        self._tmp = tempfile.TemporaryDirectory()
        self.settings = QSettings(os.path.join(self._tmp.name, "chart.ini"), QSettings.Format.IniFormat)

    def tearDown(self) -> None:
        self.settings.sync()
        self._tmp.cleanup()

    def test_loads_and_switches_timeframe(self) -> None:
        from sharechart.ui.chart_view import ChartView

        requested = []

        def loader(timeframe):
            requested.append(timeframe)
            return _rows(6)

        view = ChartView(loader, settings=self.settings)
        self.assertEqual(requested, ["1d"])
        self.assertEqual(len(view.series), 6)
        self.assertIs(view.stack.currentWidget(), view.plot_widget)
        self.assertEqual(view.summary_label.text(), price_summary(view.series))
        spark_x, spark_y = view._sparkline_curve.getData()
        self.assertEqual(len(spark_x), 6)
        self.assertEqual((spark_x[0], spark_x[-1]), (0.0, 100.0))
        self.assertTrue(all(0.0 <= y <= 40.0 for y in spark_y))

        view.set_timeframe("1h")
        self.assertEqual(requested, ["1d", "1h"])
        self.assertEqual(self.settings.value("chart/timeframe"), "1h")
        self.assertTrue(view.timeframe_buttons["1h"].isChecked())

        view.set_show_volume(False)
        self.assertFalse(view.chart.layout.show_volume)
        self.assertFalse(self.settings.value("chart/show_volume", type=bool))

    def test_empty_loader_shows_placeholder(self) -> None:
        from sharechart.ui.chart_view import ChartView

        view = ChartView(lambda timeframe: [], settings=self.settings)
        self.assertEqual(view.series, ())
        self.assertIs(view.stack.currentWidget(), view.placeholder)
        self.assertEqual(view.placeholder.text(), "No price data available")
        self.assertEqual(view.summary_label.text(), "")

    def test_failing_loader_is_logged(self) -> None:
        from sharechart.ui.chart_view import ChartView

        def loader(timeframe):
            raise RuntimeError("price service unavailable")

        with self.assertLogs("sharechart.ui.chart_view", level="ERROR"):
            view = ChartView(loader, settings=self.settings)
        self.assertEqual(view.last_error, "price service unavailable")
        self.assertIs(view.stack.currentWidget(), view.placeholder)
        self.assertIn("price service unavailable", view.placeholder.text())

    def test_invalid_rows_are_logged(self) -> None:
        from sharechart.ui.chart_view import ChartView

        with self.assertLogs("sharechart.ui.chart_view", level="ERROR"):
            view = ChartView(lambda timeframe: [{"open": 1}], settings=self.settings)
        self.assertIn("missing fields", view.last_error)

    def test_unknown_timeframe(self) -> None:
        from sharechart.ui.chart_view import ChartView

        view = ChartView(lambda timeframe: _rows(3), settings=self.settings)
        with self.assertRaises(ValueError):
            view.set_timeframe("3m")
        self.assertEqual(view.timeframe, "1d")

    def test_main_window_readout(self) -> None:
        from sharechart.core.models import HoverSelection
        from sharechart.main import demo_loader
        from sharechart.ui.main_window import MainWindow

        window = MainWindow(demo_loader(25.0, seed=1, limit=10), settings=self.settings)
        series = window.chart_view.series
        self.assertEqual(len(series), 10)
        window._on_hover_changed(HoverSelection(index=0, record=series[0], pixel_position=(1.0, 1.0)))
        self.assertIn("O $25.00", window.hover_readout.text())
        window._on_hover_changed(None)
        self.assertEqual(window.hover_readout.text(), "")
        window._save_layout()
        self.assertIsNotNone(self.settings.value("geometry"))
        window.close()


if __name__ == "__main__":
    unittest.main()
