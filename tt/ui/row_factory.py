from PySide6.QtCore import Qt
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QSizePolicy,
    QVBoxLayout,
    QWidget,
)
from tt.util.misc import format_time

# Purely organizational class to group the builders for the main view. Each builder returns a (container,
# widget_dict) tuple. The container is a QWidget with objectName "rowBg" that can be inserted into a layout, and
# widget_dict maps logical names to sub-widgets so observers can be bound to them.
class RowFactory:

    @staticmethod
    # Builds the header: task name field, project/client pickers, pomodoro toggle, start/stop, time and money.
    def header(theme: dict, projects: list, clients: list, pomodoro_minutes: int):
        container = QWidget()
        container.setObjectName("rowBg")
        container.setStyleSheet(f"#rowBg {{ background-color: {theme['bg']}; }}")
        outer = QVBoxLayout(container)
        outer.setContentsMargins(0, 0, 0, 6)
        outer.setSpacing(4)

        # Line 1: name + pickers
        top = QHBoxLayout()
        top.setSpacing(6)
        name_input = QLineEdit()
        name_input.setPlaceholderText("What are you working on?")
        name_input.setMinimumWidth(200)
        top.addWidget(name_input, 1)

        project_combo = QComboBox()
        for project in projects:
            project_combo.addItem(project["name"], project["id"])
        top.addWidget(project_combo)

        client_combo = QComboBox()
        for client in clients:
            client_combo.addItem(client["name"], client["id"])
        top.addWidget(client_combo)
        outer.addLayout(top)

        # Line 2: caption, pomodoro, money, time, button
        bottom = QHBoxLayout()
        bottom.setSpacing(6)
        caption = QLabel("")
        caption.setStyleSheet(f"color: {theme['muted_text']};")
        bottom.addWidget(caption, 1)

        pomodoro = QCheckBox(f"Pomodoro ({pomodoro_minutes}m)")
        bottom.addWidget(pomodoro)

        money_lbl = QLabel("")
        money_lbl.setAlignment(Qt.AlignRight | Qt.AlignVCenter)
        bottom.addWidget(money_lbl)

        time_lbl = QLabel(format_time(0))
        time_font = QFont()
        time_font.setPointSize(time_font.pointSize() + 4)
        time_lbl.setFont(time_font)
        time_lbl.setAlignment(Qt.AlignCenter)
        time_lbl.setMinimumWidth(110)
        bottom.addWidget(time_lbl)

        track_btn = QPushButton("Start")
        track_btn.setMinimumWidth(70)
        track_btn.setSizePolicy(QSizePolicy.Fixed, QSizePolicy.Fixed)
        bottom.addWidget(track_btn)
        outer.addLayout(bottom)

        widget_dict = {
            "container": container, "name_input": name_input,
            "project": project_combo, "client": client_combo,
            "caption": caption, "pomodoro": pomodoro,
            "money": money_lbl, "time": time_lbl, "button": track_btn,
        }
        return container, widget_dict

    @staticmethod
    # Given one task stack (all sessions sharing a group key), builds its row.
    def stack(theme: dict, stack: dict):
        container = QWidget()
        container.setObjectName("rowBg")
        container.setStyleSheet(
            f"#rowBg {{ background-color: {theme['row_bg']}; border-bottom: 1px solid {theme['separator']}; }}")
        lay = QHBoxLayout(container)
        lay.setContentsMargins(4, 4, 4, 4)
        lay.setSpacing(6)

        # Col 0: running bullet
        bullet = QLabel("")
        bullet.setFixedWidth(14)
        bullet.setAlignment(Qt.AlignCenter)
        lay.addWidget(bullet)

        # Col 1: name over project/client, with the session count
        text_box = QWidget()
        text_box.setStyleSheet("background: transparent;")
        text_lay = QVBoxLayout(text_box)
        text_lay.setContentsMargins(0, 0, 0, 0)
        text_lay.setSpacing(0)
        name_lbl = QLabel(stack["base_name"])
        name_lbl.setToolTip(stack["group_key"])
        text_lay.addWidget(name_lbl)
        sessions = stack.get("sessions", 0)
        caption = QLabel(f"{stack['project_name']} · {stack['client_name']}"
                         + (f" · {sessions} sessions" if sessions > 1 else ""))
        caption.setStyleSheet(f"color: {theme['muted_text']};")
        text_lay.addWidget(caption)
        lay.addWidget(text_box, 1)

        # Col 2: money
        money_lbl = QLabel("")
        money_lbl.setAlignment(Qt.AlignRight | Qt.AlignVCenter)
        lay.addWidget(money_lbl)

        # Col 3: stack total
        time_lbl = QLabel(format_time(stack.get("total", 0)))
        time_lbl.setAlignment(Qt.AlignCenter)
        time_lbl.setMinimumWidth(100)
        lay.addWidget(time_lbl)

        # Col 4: start/stop
        track_btn = QPushButton("Start")
        track_btn.setMinimumWidth(60)
        track_btn.setSizePolicy(QSizePolicy.Fixed, QSizePolicy.Fixed)
        lay.addWidget(track_btn)

        widget_dict = {
            "container": container, "bullet": bullet, "name": name_lbl,
            "caption": caption, "money": money_lbl, "time": time_lbl,
            "button": track_btn,
        }
        return container, widget_dict
