import pytest
import sys
from pathlib import Path
import tempfile
import os
import json

import pandas as pd
from openpyxl import load_workbook

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shift_planner.calendar_utils import next_n_weeks
from shift_planner.data_manager import DataManager
from shift_planner.reporting import ExportManager
from shift_planner.scheduler_logic import ShiftScheduler
from shift_planner.version_manager import LockManager


@pytest.fixture
def data_manager():
    """Fixture for a DataManager instance with actual temp file (safe for tests)."""
    with tempfile.NamedTemporaryFile(
        mode="w", suffix=".json", delete=False
    ) as tempfile_obj:
        temp_path = tempfile_obj.name
        tempfile_obj.write("{}")
    dm = DataManager(temp_path)
    # Seed with a small roster and two generated weeks
    first_aid = dm.add_skill("First Aid")
    anna = dm.add_employee("Anna", "A", skills=[first_aid.id])
    dm.add_employee("Carl", "B")
    dm.add_employee("Emil", "C", skills=[first_aid.id])
    dm.state.week_dates = next_n_weeks(2, "2024-03-04")
    dm.add_absence(anna.id, "2024-03-05")
    ShiftScheduler(dm).generate_schedule()
    yield dm
    os.unlink(temp_path)
    Path(temp_path).with_suffix(".bak").unlink(missing_ok=True)


@pytest.fixture
def export_manager(data_manager):
    """Fixture for an ExportManager instance."""
    return ExportManager(data_manager)


def test_excel_export_has_three_sheets(export_manager, tmp_path):
    output = tmp_path / "week.xlsx"

    assert export_manager.export_week(0, "excel", str(output))

    workbook = load_workbook(output)
    assert workbook.sheetnames == ["Weekly Summary", "Detailed Schedule", "Data Records"]
    summary = workbook["Weekly Summary"]
    assert summary["A1"].value == "Week 10: 04/03/2024 - 10/03/2024"
    assert summary["A2"].value == "Status: EDITABLE | Version: Initial Version"


def test_excel_summary_flags_absences(export_manager, tmp_path):
    """Absent employees are marked in the weekly grid and listed as exceptions."""
    output = tmp_path / "week.xlsx"
    export_manager.export_week(0, "excel", str(output))

    values = [
        cell.value
        for row in load_workbook(output)["Weekly Summary"].iter_rows()
        for cell in row
        if isinstance(cell.value, str)
    ]
    assert any("Anna (ABSENT)" in value for value in values)
    assert "Weekly Exceptions" in values
    assert "05/03/2024" in values


def test_excel_detailed_sheet_lists_skills(export_manager, tmp_path):
    output = tmp_path / "week.xlsx"
    export_manager.export_week(0, "excel", str(output))

    values = [
        cell.value
        for row in load_workbook(output)["Detailed Schedule"].iter_rows()
        for cell in row
        if isinstance(cell.value, str)
    ]
    assert any("Emil - Skills: First Aid" in value for value in values)


def test_excel_status_shows_locked_week(export_manager, data_manager, tmp_path):
    LockManager(data_manager).set_locked(1, True)
    output = tmp_path / "locked.xlsx"

    export_manager.export_week(1, "excel", str(output))

    assert load_workbook(output)["Weekly Summary"]["A2"].value.startswith("Status: LOCKED")


def test_pdf_export_creates_file(export_manager, tmp_path):
    output = tmp_path / "week.pdf"

    assert export_manager.export_week(0, "pdf", str(output))

    assert output.exists()
    assert output.read_bytes().startswith(b"%PDF")


def test_csv_export_has_one_row_per_assignment(export_manager, tmp_path):
    output = tmp_path / "week.csv"

    assert export_manager.export_week(0, "csv", str(output))

    df = pd.read_csv(output)
    assert len(df) == 21
    assert df["Absent"].sum() == 1


def test_export_of_unknown_week_fails(export_manager, tmp_path):
    assert export_manager.export_week(9, "excel", str(tmp_path / "none.xlsx")) is False
    assert export_manager.export_week(9, "pdf", str(tmp_path / "none.pdf")) is False


def test_unsupported_format_raises(export_manager, tmp_path):
    with pytest.raises(ValueError):
        export_manager.export_week(0, "docx", str(tmp_path / "week.docx"))


def test_default_filename(export_manager):
    filename = export_manager.get_default_filename("excel")
    assert filename.startswith("ShiftPlanner_Export_")
    assert filename.endswith(".xlsx")
    assert export_manager.get_default_filename("pdf").endswith(".pdf")


def test_batch_export(export_manager, tmp_path):
    results = export_manager.batch_export(0, str(tmp_path / "exports"), formats=["excel", "pdf", "docx"])

    assert results == {"excel": True, "pdf": True, "docx": False}
    assert len(list((tmp_path / "exports").iterdir())) == 2
