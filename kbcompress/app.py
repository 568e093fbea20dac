from __future__ import annotations

from pathlib import Path

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QAction, QIntValidator, QPixmap
from PySide6.QtWidgets import (
    QApplication,
    QFileDialog,
    QFormLayout,
    QFrame,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QPlainTextEdit,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from .config import AppSettings
from .formatting import (
    format_compression_ratio,
    format_file_size,
    format_quality,
    format_scale,
    format_size_reduction,
)
from .logger import setup_logger
from .models import (
    SUPPORTED_SUFFIXES,
    CompressionComplete,
    Compressing,
    Failed,
    Idle,
    ImageSelected,
    Saved,
    UiState,
    is_supported_image,
)
from .session import CompressorSession
from .storage import default_output_dir


class DropArea(QFrame):
    dropped = Signal(Path)

    def __init__(self) -> None:
        super().__init__()
        self.setAcceptDrops(True)
        self.setFrameShape(QFrame.NoFrame)
        self.setMinimumHeight(180)
        self.setStyleSheet(
            "QFrame { border: 1px solid #d0d0d0; border-radius: 8px; background: #fafafa; }"
        )
        layout = QVBoxLayout()
        self.label = QLabel("拖拽一张图片到此处")
        self.label.setAlignment(Qt.AlignCenter)
        layout.addWidget(self.label)
        self.setLayout(layout)

    def dragEnterEvent(self, event) -> None:
        if event.mimeData().hasUrls():
            event.acceptProposedAction()
        else:
            event.ignore()

    def dropEvent(self, event) -> None:
        for url in event.mimeData().urls():
            path = Path(url.toLocalFile())
            if url.toLocalFile() and is_supported_image(path):
                self.dropped.emit(path)
                return

    def show_preview(self, path: Path) -> None:
        pixmap = QPixmap(str(path))
        if pixmap.isNull():
            self.label.setText(path.name)
            return
        self.label.setPixmap(
            pixmap.scaled(
                max(100, self.width() - 20),
                max(100, self.height() - 20),
                Qt.KeepAspectRatio,
                Qt.SmoothTransformation,
            )
        )

    def clear_preview(self) -> None:
        self.label.clear()
        self.label.setText("拖拽一张图片到此处")


class MainWindow(QMainWindow):

    def __init__(self, session: CompressorSession | None = None, settings: AppSettings | None = None) -> None:
        super().__init__()
        self.setWindowTitle("Kbcompress")
        self.resize(720, 600)
        self.session = session or CompressorSession()
        self.settings = settings or AppSettings()
        self.drop_area = DropArea()
        self.file_line = QLineEdit()
        self.target_line = QLineEdit()
        self.output_line = QLineEdit()
        self.compress_button = QPushButton("开始压缩")
        self.cancel_button = QPushButton("取消")
        self.save_button = QPushButton("保存")
        self.result_label = QLabel()
        self.log_area = QPlainTextEdit()
        self.setup_ui()

    def setup_ui(self) -> None:
        central = QWidget()
        layout = QVBoxLayout()
        layout.addWidget(self.drop_area)
        layout.addWidget(self.build_options_group())
        layout.addWidget(self.build_action_group())
        layout.addWidget(self.result_label)
        layout.addWidget(self.log_area)
        central.setLayout(layout)
        self.setCentralWidget(central)
        self.log_area.setReadOnly(True)
        self.file_line.setReadOnly(True)
        self.target_line.setValidator(QIntValidator(1, 10_000_000, self))
        self.target_line.setPlaceholderText("目标大小 (KB)")
        self.load_settings()
        self.compress_button.clicked.connect(self.on_compress)
        self.cancel_button.clicked.connect(self.session.cancel)
        self.save_button.clicked.connect(self.on_save)
        self.drop_area.dropped.connect(self.session.select_image)
        self.session.state_changed.connect(self.render)
        exit_action = QAction("退出", self)
        exit_action.triggered.connect(self.close)
        self.menuBar().addAction(exit_action)
        self.render(self.session.state)

    def build_options_group(self) -> QGroupBox:
        group = QGroupBox("压缩选项")
        layout = QFormLayout()
        file_layout = QHBoxLayout()
        file_button = QPushButton("选择图片")
        file_button.clicked.connect(self.pick_image)
        file_layout.addWidget(self.file_line)
        file_layout.addWidget(file_button)
        output_layout = QHBoxLayout()
        output_button = QPushButton("选择输出目录")
        output_button.clicked.connect(self.pick_output_dir)
        output_layout.addWidget(self.output_line)
        output_layout.addWidget(output_button)
        layout.addRow("图片文件", file_layout)
        layout.addRow("目标大小 (KB)", self.target_line)
        layout.addRow("输出目录", output_layout)
        group.setLayout(layout)
        return group

    def build_action_group(self) -> QWidget:
        group = QWidget()
        layout = QHBoxLayout()
        layout.addWidget(self.compress_button)
        layout.addWidget(self.cancel_button)
        layout.addWidget(self.save_button)
        group.setLayout(layout)
        return group

    def pick_image(self) -> None:
        patterns = " ".join(f"*{suffix}" for suffix in sorted(SUPPORTED_SUFFIXES))
        path, _ = QFileDialog.getOpenFileName(self, "选择图片", "", f"Images ({patterns})")
        if path:
            self.session.select_image(Path(path))

    def pick_output_dir(self) -> None:
        default_dir = self.output_line.text().strip() or str(default_output_dir())
        path = QFileDialog.getExistingDirectory(self, "选择输出目录", default_dir)
        if path:
            self.output_line.setText(path)
            self.settings.output_dir = Path(path)

    def on_compress(self) -> None:
        text = self.target_line.text().strip()
        target_kb = int(text) if text.isdigit() else 0
        if target_kb > 0:
            self.settings.last_target_kb = target_kb
        self.session.compress(target_kb)

    def on_save(self) -> None:
        output_text = self.output_line.text().strip()
        output_dir = Path(output_text) if output_text else None
        if output_dir is not None and output_dir.exists() and not output_dir.is_dir():
            self.append_log("请输入有效的输出目录")
            return
        self.session.save(output_dir)

    def render(self, state: UiState) -> None:
        self.compress_button.setEnabled(isinstance(state, (ImageSelected, CompressionComplete, Saved)))
        self.cancel_button.setEnabled(isinstance(state, Compressing))
        self.save_button.setEnabled(isinstance(state, CompressionComplete))
        if isinstance(state, Idle):
            self.file_line.setText("")
            self.result_label.setText("")
            self.drop_area.clear_preview()
        elif isinstance(state, ImageSelected):
            self.file_line.setText(str(state.source))
            self.result_label.setText(f"原始大小：{format_file_size(state.original_size_kb)}")
            self.drop_area.show_preview(state.source)
        elif isinstance(state, Compressing):
            self.append_log(f"开始压缩 {state.source.name}，目标 {format_file_size(state.target_kb)}")
        elif isinstance(state, CompressionComplete):
            self.result_label.setText(self.describe_result(state))
            self.append_log(f"{state.source.name} 压缩完成：{format_file_size(state.result.size_kb)}")
            if state.result.approximate:
                self.append_log("无法达到目标大小，已输出最接近的结果")
        elif isinstance(state, Saved):
            self.append_log(f"已保存：{state.output}")
        elif isinstance(state, Failed):
            self.append_log(state.message)

    def describe_result(self, state: CompressionComplete) -> str:
        result = state.result
        width, height = result.dimensions
        return "，".join(
            [
                f"结果：{format_file_size(result.size_kb)}",
                f"质量 {format_quality(result.quality)}",
                f"缩放 {format_scale(result.scale)} ({width}x{height})",
                f"压缩比 {format_compression_ratio(state.original_size_kb, result.size_kb)}",
                format_size_reduction(state.original_size_kb, result.size_kb),
            ]
        )

    def append_log(self, text: str) -> None:
        self.log_area.appendPlainText(text)

    def load_settings(self) -> None:
        output_dir = self.settings.output_dir
        if output_dir:
            self.output_line.setText(str(output_dir))
        target_kb = self.settings.last_target_kb
        if target_kb:
            self.target_line.setText(str(target_kb))

    def closeEvent(self, event) -> None:
        self.session.shutdown()
        self.settings.sync()
        super().closeEvent(event)


def main() -> None:
    setup_logger()
    app = QApplication([])
    window = MainWindow()
    window.show()
    app.exec()
