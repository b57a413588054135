"""
Main Window
===========
Two-column layout:

┌──────────────────────┬───────────────────────────────────────────┐
│  Upload Watermark    │                                           │
│  Product Mockup  [▼] │            COMPOSITION CANVAS             │
│  ☑ Scan Protection   │          (click + drag to position)       │
│  Scale   ────●── 30% │                                           │
│  Opacity ───●─── 50% ├───────────────────────────────────────────┤
│  [Reset][Download]   │  Tip / submit feedback                    │
│  [Submit]            │  Security Scan Result (JSON)              │
└──────────────────────┴───────────────────────────────────────────┘

The window only emits requests; WatermarkController (main.py) owns the
state and decides what happens.
"""

from pathlib import Path
from typing import Optional, Sequence

from PIL import Image
from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton,
    QComboBox, QCheckBox, QFileDialog, QMessageBox, QPlainTextEdit, QFrame
)

from brandmark.config import AppConfig, ProductOption
from brandmark.core.state import Transform

from .widgets import CompositionCanvas, NoWheelSlider

STYLESHEET = """
QMainWindow, QWidget#controlPanel { background: #1F2335; color: #C0CAF5; }
QLabel { color: #A9B1D6; }
QLabel#title { color: #C0CAF5; font-size: 20px; font-weight: bold; }
QPushButton {
    background: #2F3549; color: #C0CAF5; border: 1px solid #3B4261;
    border-radius: 6px; padding: 6px 12px;
}
QPushButton:hover { background: #3B4261; }
QPushButton:disabled { color: #565F89; }
QPushButton#submitButton { background: #3D59A1; }
QPlainTextEdit { background: #1A1B26; color: #C0CAF5; border: 1px solid #3B4261; }
"""


class MainWindow(QMainWindow):
    """
    Watermark preview window.

    Signals:
        watermark_file_selected(Path): User picked a watermark file
        product_selected(object): Locator of the chosen product mockup
        scale_changed(float): 0.1 - 0.9
        opacity_changed(float): 0.0 - 1.0
        reset_requested(): Reset transform
        download_requested(Path): Save the export to this path
        submit_requested(bool): Upload; argument is scan protection
    """

    watermark_file_selected = pyqtSignal(object)
    product_selected = pyqtSignal(object)
    scale_changed = pyqtSignal(float)
    opacity_changed = pyqtSignal(float)
    reset_requested = pyqtSignal()
    download_requested = pyqtSignal(object)
    submit_requested = pyqtSignal(bool)

    def __init__(self, config: AppConfig, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.config = config
        self._suggested_filename = f"{config.export_default_stem}.png"

        self.setWindowTitle("BrandMark Studio")
        self.resize(1280, 800)
        self.setStyleSheet(STYLESHEET)

        self._setup_ui()
        self._connect_signals()
        self.set_products(config.products)

    def _setup_ui(self):
        central = QWidget()
        layout = QHBoxLayout(central)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(16)

        layout.addWidget(self._create_control_panel(), 1)
        layout.addWidget(self._create_preview_panel(), 2)

        self.setCentralWidget(central)
        self.statusBar().showMessage("Ready")

    def _create_control_panel(self) -> QWidget:
        panel = QWidget()
        panel.setObjectName("controlPanel")
        layout = QVBoxLayout(panel)
        layout.setSpacing(12)

        title = QLabel("Add Your Watermark")
        title.setObjectName("title")
        layout.addWidget(title)

        # Upload
        upload_box = QFrame()
        upload_box.setStyleSheet("QFrame { border: 2px dashed #3B4261; border-radius: 8px; }")
        upload_layout = QVBoxLayout(upload_box)
        self.upload_btn = QPushButton("Upload Watermark")
        upload_layout.addWidget(self.upload_btn)
        self.upload_hint = QLabel(self._upload_hint_text())
        self.upload_hint.setWordWrap(True)
        self.upload_hint.setStyleSheet("border: none;")
        upload_layout.addWidget(self.upload_hint)
        layout.addWidget(upload_box)

        # Product picker
        layout.addWidget(QLabel("Product Mockup"))
        product_row = QHBoxLayout()
        self.product_combo = QComboBox()
        product_row.addWidget(self.product_combo, 1)
        self.browse_product_btn = QPushButton("Browse...")
        product_row.addWidget(self.browse_product_btn)
        layout.addLayout(product_row)

        self.protection_check = QCheckBox("Security Scan Protection")
        self.protection_check.setChecked(self.config.scan_protection_default)
        layout.addWidget(self.protection_check)

        # Sliders
        self.scale_slider, self.scale_value = self._create_slider(layout, "Scale", 10, 90)
        self.opacity_slider, self.opacity_value = self._create_slider(layout, "Opacity", 0, 100)

        buttons = QHBoxLayout()
        self.reset_btn = QPushButton("Reset")
        self.download_btn = QPushButton("Download")
        self.submit_btn = QPushButton("Submit")
        self.submit_btn.setObjectName("submitButton")
        for btn in (self.reset_btn, self.download_btn, self.submit_btn):
            btn.setCursor(Qt.CursorShape.PointingHandCursor)
            buttons.addWidget(btn)
        layout.addLayout(buttons)

        layout.addStretch(1)
        return panel

    def _create_slider(self, layout: QVBoxLayout, label: str, min_val: int, max_val: int):
        row = QHBoxLayout()
        name = QLabel(label)
        name.setMinimumWidth(60)
        row.addWidget(name)

        slider = NoWheelSlider(Qt.Orientation.Horizontal)
        slider.setRange(min_val, max_val)
        row.addWidget(slider, 1)

        value = QLabel()
        value.setMinimumWidth(48)
        value.setAlignment(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)
        row.addWidget(value)

        layout.addLayout(row)
        return slider, value

    def _create_preview_panel(self) -> QWidget:
        panel = QWidget()
        layout = QVBoxLayout(panel)
        layout.setContentsMargins(0, 0, 0, 0)

        self.canvas = CompositionCanvas(self.config.canvas_width, self.config.canvas_height)
        layout.addWidget(self.canvas, 1)

        tip = QLabel("Tip: Click and drag on the preview to position your watermark")
        layout.addWidget(tip)

        self.feedback_label = QLabel()
        self.feedback_label.setWordWrap(True)
        self.feedback_label.hide()
        layout.addWidget(self.feedback_label)

        self.result_title = QLabel("Security Scan Result")
        self.result_title.hide()
        layout.addWidget(self.result_title)

        self.result_view = QPlainTextEdit()
        self.result_view.setReadOnly(True)
        self.result_view.setMaximumHeight(200)
        self.result_view.hide()
        layout.addWidget(self.result_view)

        return panel

    def _upload_hint_text(self) -> str:
        if self.config.ingestion_policy.accepts_any_file:
            return "Images and .txt files are previewed; any other file is uploaded as-is"
        return "PNG with transparency or .txt files supported"

    def _connect_signals(self):
        self.upload_btn.clicked.connect(self._browse_watermark)
        self.browse_product_btn.clicked.connect(self._browse_product)
        self.product_combo.currentIndexChanged.connect(self._on_product_index_changed)
        self.scale_slider.valueChanged.connect(lambda v: self.scale_changed.emit(v / 100.0))
        self.opacity_slider.valueChanged.connect(lambda v: self.opacity_changed.emit(v / 100.0))
        self.reset_btn.clicked.connect(self.reset_requested.emit)
        self.download_btn.clicked.connect(self._browse_download)
        self.submit_btn.clicked.connect(
            lambda: self.submit_requested.emit(self.protection_check.isChecked())
        )

    # ===== Dialogs =====

    def _browse_watermark(self):
        path, _ = QFileDialog.getOpenFileName(
            self, "Upload Watermark", "", self.config.ingestion_policy.file_dialog_filter()
        )
        if path:
            self.watermark_file_selected.emit(Path(path))

    def _browse_product(self):
        path, _ = QFileDialog.getOpenFileName(
            self, "Choose Product Mockup", "",
            "Images (*.png *.jpg *.jpeg *.gif *.bmp *.webp)"
        )
        if path:
            option = ProductOption.parse(path)
            self.product_combo.addItem(option.label, option.locator)
            self.product_combo.setCurrentIndex(self.product_combo.count() - 1)

    def _browse_download(self):
        path, _ = QFileDialog.getSaveFileName(self, "Download", self._suggested_filename)
        if path:
            self.download_requested.emit(Path(path))

    def _on_product_index_changed(self, index: int):
        if index >= 0:
            self.product_selected.emit(self.product_combo.itemData(index))

    # ===== Updates from the controller =====

    def set_products(self, products: Sequence[ProductOption]):
        for option in products:
            self.product_combo.addItem(option.label, option.locator)

    def set_transform(self, transform: Transform):
        """Sync sliders without echoing change signals."""
        for slider, label, value in (
                (self.scale_slider, self.scale_value, transform.scale),
                (self.opacity_slider, self.opacity_value, transform.opacity),
        ):
            slider.blockSignals(True)
            slider.setValue(int(round(value * 100)))
            slider.blockSignals(False)
            label.setText(f"{value * 100:.0f}%")

    def set_frame(self, image: Image.Image):
        self.canvas.set_frame(image)

    def set_canvas_message(self, message: Optional[str]):
        self.canvas.set_message(message)

    def set_suggested_filename(self, filename: str):
        self._suggested_filename = filename

    def set_submitting(self, submitting: bool):
        self.submit_btn.setEnabled(not submitting)
        self.submit_btn.setText("Submitting..." if submitting else "Submit")

    def clear_submit_feedback(self):
        self.feedback_label.hide()
        self.result_title.hide()
        self.result_view.hide()
        self.result_view.clear()

    def show_submit_error(self, message: str):
        self.feedback_label.setStyleSheet("color: #ff8080;")
        self.feedback_label.setText(message)
        self.feedback_label.show()

    def show_submit_success(self, result_text: str):
        self.feedback_label.setStyleSheet("color: #80ff80;")
        self.feedback_label.setText("Uploaded successfully")
        self.feedback_label.show()
        self.result_view.setPlainText(result_text)
        self.result_title.show()
        self.result_view.show()

    def show_message(self, message: str, timeout: int = 3000):
        self.statusBar().showMessage(message, timeout)

    def show_error(self, title: str, message: str):
        QMessageBox.critical(self, title, message)
