"""
Team page: roster of people with access to the farms.
"""

from typing import Any, Dict, Optional

from PySide6.QtWidgets import QGridLayout, QTableWidgetItem, QWidget
from qfluentwidgets import (
    BodyLabel,
    CaptionLabel,
    ComboBox,
    InfoBar,
    LineEdit,
    MessageBox,
    MessageBoxBase,
    PasswordLineEdit,
    PrimaryPushButton,
    PushButton,
    SubtitleLabel,
    TableWidget,
)
from qfluentwidgets import FluentIcon as FIF

from farmview.core.models import TeamMember
from farmview.core.team import ROLES, role_label, validate_member
from farmview.errors import ValidationError
from farmview.gui.components.base_interface import BaseInterface, PageGroup
from farmview.gui.config import tr
from farmview.gui.context import AppContext

TEAM_COLUMNS = ("full_name", "email", "phone", "role")


class MemberDialog(MessageBoxBase):
    """Add/edit team member dialog; the password may stay blank on edit."""

    def __init__(self, member: Optional[TeamMember] = None, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._editing = member is not None
        self.form: Optional[Dict[str, Any]] = None

        title_key = "page.team.dialog.edit_title" if member else "page.team.dialog.new_title"
        self.viewLayout.addWidget(SubtitleLabel(tr(title_key), self))

        grid = QGridLayout()
        grid.setSpacing(8)
        self.edit_name = self._add_row(grid, 0, "full_name", LineEdit())
        self.edit_email = self._add_row(grid, 1, "email", LineEdit())
        self.edit_phone = self._add_row(grid, 2, "phone", LineEdit())
        self.edit_password = self._add_row(grid, 3, "password", PasswordLineEdit())
        self.combo_role = self._add_row(grid, 4, "role", ComboBox())
        for value, label in ROLES:
            self.combo_role.addItem(label, userData=value)
        self.viewLayout.addLayout(grid)

        self.error_label = CaptionLabel("")
        self.error_label.setTextColor("#C42B1C", "#FF99A4")
        self.viewLayout.addWidget(self.error_label)

        self.yesButton.setText(tr("save"))
        self.cancelButton.setText(tr("cancel"))
        self.widget.setMinimumWidth(420)

        if member is not None:
            self.edit_name.setText(member.full_name)
            self.edit_email.setText(member.email)
            self.edit_phone.setText(member.phone)
            self.edit_password.setPlaceholderText(tr("page.team.hint.keep_password"))
            self.combo_role.setCurrentIndex(max(self.combo_role.findData(member.role), 0))

    def _add_row(self, grid: QGridLayout, row: int, name: str, widget):
        grid.addWidget(BodyLabel(tr(f"page.team.column.{name}")), row, 0)
        grid.addWidget(widget, row, 1)
        return widget

    def values(self) -> Dict[str, Any]:
        return {
            "full_name": self.edit_name.text(),
            "email": self.edit_email.text(),
            "phone": self.edit_phone.text(),
            "password": self.edit_password.text(),
            "role": self.combo_role.currentData(),
        }

    def validate(self) -> bool:
        values = self.values()
        try:
            validate_member(values, require_password=not self._editing)
        except ValidationError as exc:
            self.error_label.setText(str(exc))
            return False
        self.form = values
        return True


class TeamTab(BaseInterface):
    """
    Team roster table with add, edit and remove.
    """

    def __init__(self, context: AppContext, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.roster = context.roster
        self._init_ui()
        self.refresh()

    def _init_ui(self) -> None:
        group = PageGroup(tr("page.team.group.actions"))
        self.btn_add = PrimaryPushButton(FIF.ADD, tr("page.team.btn.add"))
        self.btn_add.clicked.connect(self._on_add)
        group.add_widget(self.btn_add)
        self.btn_edit = PushButton(FIF.EDIT, tr("page.team.btn.edit"))
        self.btn_edit.clicked.connect(self._on_edit)
        group.add_widget(self.btn_edit)
        self.btn_delete = PushButton(FIF.DELETE, tr("page.team.btn.delete"))
        self.btn_delete.clicked.connect(self._on_delete)
        group.add_widget(self.btn_delete)
        self.add_group(group)
        self.add_stretch()

        self.table = TableWidget()
        self.table.setColumnCount(len(TEAM_COLUMNS))
        self.table.setHorizontalHeaderLabels([tr(f"page.team.column.{c}") for c in TEAM_COLUMNS])
        self.table.verticalHeader().hide()
        self.table.setEditTriggers(TableWidget.EditTrigger.NoEditTriggers)
        self.table.setSelectionBehavior(TableWidget.SelectionBehavior.SelectRows)
        self.table.setSelectionMode(TableWidget.SelectionMode.SingleSelection)
        self.table.horizontalHeader().setStretchLastSection(True)
        self._content_layout.addWidget(self.table, 1)

    def refresh(self) -> None:
        members = self.roster.members
        self.table.setRowCount(len(members))
        for row, member in enumerate(members):
            self.table.setItem(row, 0, QTableWidgetItem(member.full_name))
            self.table.setItem(row, 1, QTableWidgetItem(member.email))
            self.table.setItem(row, 2, QTableWidgetItem(member.phone))
            self.table.setItem(row, 3, QTableWidgetItem(role_label(member.role)))

    def selected_member(self) -> Optional[TeamMember]:
        row = self.table.currentRow()
        members = self.roster.members
        if 0 <= row < len(members):
            return members[row]
        return None

    def add_member(self, form: Dict[str, Any]) -> Optional[TeamMember]:
        try:
            member = self.roster.add(form)
        except (ValidationError, OSError) as exc:
            InfoBar.error(title=tr("error"), content=str(exc), parent=self)
            return None
        self.refresh()
        InfoBar.success(
            title=tr("success"),
            content=tr("page.team.msg.added").format(name=member.full_name),
            parent=self,
            duration=2500,
        )
        return member

    def update_member(self, member_id: str, form: Dict[str, Any]) -> Optional[TeamMember]:
        try:
            member = self.roster.update(member_id, form)
        except (ValidationError, KeyError, OSError) as exc:
            InfoBar.error(title=tr("error"), content=str(exc), parent=self)
            return None
        self.refresh()
        return member

    def _warn_no_selection(self) -> None:
        InfoBar.warning(title=tr("warning"), content=tr("page.team.msg.select_first"), parent=self)

    def _on_add(self) -> None:
        dialog = MemberDialog(parent=self.window())
        if dialog.exec() and dialog.form is not None:
            self.add_member(dialog.form)

    def _on_edit(self) -> None:
        member = self.selected_member()
        if member is None:
            self._warn_no_selection()
            return
        dialog = MemberDialog(member, parent=self.window())
        if dialog.exec() and dialog.form is not None:
            self.update_member(member.id, dialog.form)

    def _on_delete(self) -> None:
        member = self.selected_member()
        if member is None:
            self._warn_no_selection()
            return
        box = MessageBox(
            tr("page.team.dialog.delete_title"),
            tr("page.team.dialog.delete_content").format(name=member.full_name),
            self.window(),
        )
        box.yesButton.setText(tr("delete"))
        box.cancelButton.setText(tr("cancel"))
        if box.exec():
            self.roster.delete(member.id)
            self.refresh()
