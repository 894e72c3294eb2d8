from typing import Optional

from PyQt6.QtCore import QSettings
from PyQt6.QtWidgets import QLabel, QMainWindow

from sharechart.core.models import HoverSelection
from sharechart.core.tooltip import format_period_start, format_price, format_volume

from .chart_view import ChartView, SeriesLoader


class MainWindow(QMainWindow):
    def __init__(
        self,
        series_loader: SeriesLoader,
        title: str = 'Share price',
        settings: Optional[QSettings] = None,
    ) -> None:
        super().__init__()
        self.setWindowTitle(title)
        self.resize(960, 640)
        self._settings = settings if settings is not None else QSettings('ShareChart', 'ShareChart')

        self.chart_view = ChartView(series_loader, settings=self._settings)
        self.setCentralWidget(self.chart_view)

        self.hover_readout = QLabel('')
        self.statusBar().addPermanentWidget(self.hover_readout)
        self.chart_view.hover_changed.connect(self._on_hover_changed)
        self.chart_view.timeframe_changed.connect(lambda tf: self.statusBar().showMessage(f'Timeframe {tf}', 2000))

        self._restore_layout()

    def _on_hover_changed(self, selection: Optional[HoverSelection]) -> None:
        if selection is None:
            self.hover_readout.setText('')
            return
        record = selection.record
        self.hover_readout.setText(
            f'{format_period_start(record.period_start)}  '
            f'O {format_price(record.open)}  H {format_price(record.high)}  '
            f'L {format_price(record.low)}  C {format_price(record.close)}  '
            f'V {format_volume(record.volume)}'
        )

    def closeEvent(self, event) -> None:
        self._save_layout()
        super().closeEvent(event)

    def _save_layout(self) -> None:
        self._settings.setValue('geometry', self.saveGeometry())

    def _restore_layout(self) -> None:
        geometry = self._settings.value('geometry')
        if geometry is not None:
            self.restoreGeometry(geometry)
