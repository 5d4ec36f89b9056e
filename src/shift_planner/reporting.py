"""
Reporting and Export Module for Shift Planning System

Exports a week of the plan to Excel (weekly summary, detailed schedule and
data records sheets), PDF and CSV. Everything is read from the DataManager
views; nothing here mutates the state.
"""

import pandas as pd
from openpyxl.styles import Alignment, Font, PatternFill
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Any
import logging

from .calendar_utils import SHIFT_TYPES, format_display, week_label
from .data_manager import DataManager
from .version_manager import LockManager, VersionManager

logger = logging.getLogger(__name__)

SHEET_SUMMARY = "Weekly Summary"
SHEET_DETAILED = "Detailed Schedule"
SHEET_RECORDS = "Data Records"

COLORS = {
    "title_bg": "4472C4",
    "title_text": "FFFFFF",
    "header_bg": "E0E0E0",
    "skill_highlight": "E2EFDA",
    "absent_highlight": "FFC7CE",
}


class ReportGenerator:
    """Builds the export files for one week"""

    def __init__(self, data_manager: DataManager, version_manager: Optional[VersionManager] = None):
        self.data_manager = data_manager
        self.version_manager = version_manager or VersionManager(data_manager)
        self.lock_manager: LockManager = self.version_manager.lock_manager
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        """Setup custom report styles"""
        self.styles.add(ParagraphStyle(
            name='PlanTitle',
            parent=self.styles['Heading1'],
            fontSize=18,
            spaceAfter=12,
            alignment=1  # Center alignment
        ))

        self.styles.add(ParagraphStyle(
            name='PlanCell',
            parent=self.styles['Normal'],
            fontSize=8,
            leading=10
        ))

    def get_week_header(self, week_index: int) -> Dict[str, str]:
        """Title, version and lock status of a week"""
        active = self.version_manager.get_active_version(week_index)
        return {
            "title": week_label(self.data_manager.get_week_dates(week_index)),
            "version": active[1].name if active else "Default",
            "status": "LOCKED" if self.lock_manager.is_locked(week_index) else "EDITABLE",
        }

    @staticmethod
    def _employee_text(entry: Dict[str, Any], with_skills: bool = False) -> str:
        text = entry["name"]
        if entry["is_absent"]:
            text += " (ABSENT)"
        if entry["is_cross_team"]:
            text += f" (Team {entry['team']})"
        if with_skills and entry["skills"] and not entry["is_absent"]:
            text += f" - Skills: {', '.join(entry['skills'])}"
        return text

    def _shift_cell(self, shift_type: str, shift: Dict[str, Any], with_skills: bool = False) -> str:
        lines = [f"{shift_type} Team {shift['team']}"]
        if shift["employees"]:
            lines.extend(self._employee_text(e, with_skills) for e in shift["employees"])
        else:
            lines.append("No employees")
        return "\n".join(lines)

    def _create_grid_dataframe(self, week_index: int, with_skills: bool = False) -> pd.DataFrame:
        """Day x shift grid"""
        data = []
        for day_detail in self.data_manager.get_shift_details(week_index):
            row = {"Day": f"{day_detail['day']} ({format_display(day_detail['date'])})" if day_detail["date"]
                   else day_detail["day"]}
            for shift_type in SHIFT_TYPES:
                row[shift_type] = self._shift_cell(shift_type, day_detail["shifts"][shift_type], with_skills)
            data.append(row)
        return pd.DataFrame(data, columns=["Day"] + list(SHIFT_TYPES))

    def _create_coverage_dataframe(self, week_index: int) -> pd.DataFrame:
        data = []
        for coverage in self.data_manager.get_weekly_skill_coverage(week_index).values():
            row = {"Skill": coverage["name"]}
            for shift_type in SHIFT_TYPES:
                row[f"{shift_type} Shift Coverage"] = coverage[shift_type]
            data.append(row)
        return pd.DataFrame(data, columns=["Skill"] + [f"{s} Shift Coverage" for s in SHIFT_TYPES])

    def _create_absence_dataframe(self, week_index: int) -> pd.DataFrame:
        data = [
            {
                "Employee": absence["name"],
                "Absent Date": format_display(absence["date"]),
                "Team": f"Team {absence['team']}",
                "Note": "Absent"
            }
            for absence in self.data_manager.get_week_absences(week_index)
        ]
        return pd.DataFrame(data, columns=["Employee", "Absent Date", "Team", "Note"])

    def _create_employee_dataframe(self) -> pd.DataFrame:
        data = []
        for emp in self.data_manager.get_employees():
            data.append({
                "ID": emp.id,
                "Name": emp.name,
                "Team": f"Team {emp.team}",
                "Skills": ", ".join(self.data_manager.get_skill_names(emp)) or "None",
                "Absent Dates": ", ".join(format_display(d) for d in emp.absent_dates) or "None"
            })
        return pd.DataFrame(data, columns=["ID", "Name", "Team", "Skills", "Absent Dates"])

    def _create_skill_dataframe(self) -> pd.DataFrame:
        data = []
        for skill in self.data_manager.get_skills():
            holders = [emp.name for emp in self.data_manager.get_employees_with_skill(skill.id)]
            data.append({
                "ID": skill.id,
                "Name": skill.name,
                "Description": skill.description,
                "Employees with this Skill": ", ".join(holders) or "None"
            })
        return pd.DataFrame(data, columns=["ID", "Name", "Description", "Employees with this Skill"])

    def create_flat_schedule_dataframe(self, week_index: int) -> pd.DataFrame:
        """One row per employee and shift"""
        data = []
        for day_detail in self.data_manager.get_shift_details(week_index):
            for shift_type in SHIFT_TYPES:
                shift = day_detail["shifts"][shift_type]
                for entry in shift["employees"]:
                    data.append({
                        "Date": day_detail["date"],
                        "Day": day_detail["day"],
                        "Shift": shift_type,
                        "Shift_Team": shift["team"],
                        "Employee_ID": entry["id"],
                        "Employee": entry["name"],
                        "Employee_Team": entry["team"],
                        "Absent": entry["is_absent"],
                        "Cross_Team": entry["is_cross_team"]
                    })
        return pd.DataFrame(data, columns=["Date", "Day", "Shift", "Shift_Team", "Employee_ID",
                                           "Employee", "Employee_Team", "Absent", "Cross_Team"])

    def export_week_excel(self, week_index: int, output_path: str) -> bool:
        """Export one week to an Excel workbook with three sheets"""
        try:
            if not self.data_manager.get_week_dates(week_index):
                logger.error(f"No data available for week {week_index + 1}")
                return False

            header = self.get_week_header(week_index)
            status_line = f"Status: {header['status']} | Version: {header['version']}"

            with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
                # Weekly summary: grid, skill coverage and absences stacked vertically
                grid_df = self._create_grid_dataframe(week_index)
                coverage_df = self._create_coverage_dataframe(week_index)
                absence_df = self._create_absence_dataframe(week_index)

                row = 3
                section_rows = {}
                for title, df in (("Weekly Schedule", grid_df),
                                  ("Weekly Skill Coverage Summary", coverage_df),
                                  ("Weekly Exceptions", absence_df)):
                    section_rows[title] = row
                    df.to_excel(writer, sheet_name=SHEET_SUMMARY, index=False, startrow=row + 1)
                    row += len(df) + 4

                summary_ws = writer.sheets[SHEET_SUMMARY]
                summary_ws.cell(row=1, column=1, value=header["title"])
                summary_ws.cell(row=2, column=1, value=status_line)
                for title, start in section_rows.items():
                    summary_ws.cell(row=start + 1, column=1, value=title)

                # Detailed schedule with skill annotations
                detailed_df = self._create_grid_dataframe(week_index, with_skills=True)
                detailed_df.to_excel(writer, sheet_name=SHEET_DETAILED, index=False, startrow=3)
                detailed_ws = writer.sheets[SHEET_DETAILED]
                detailed_ws.cell(row=1, column=1, value=header["title"])
                detailed_ws.cell(row=2, column=1, value=status_line)

                # Flat records of employees and skills
                emp_df = self._create_employee_dataframe()
                emp_df.to_excel(writer, sheet_name=SHEET_RECORDS, index=False, startrow=1)
                skill_start = len(emp_df) + 5
                skill_df = self._create_skill_dataframe()
                skill_df.to_excel(writer, sheet_name=SHEET_RECORDS, index=False, startrow=skill_start)
                records_ws = writer.sheets[SHEET_RECORDS]
                records_ws.cell(row=1, column=1, value="Employee Data Records")
                records_ws.cell(row=skill_start, column=1, value="Skill Data Records")

                self._format_excel_worksheets(writer)

            logger.info(f"Exported week {week_index + 1} to Excel: {output_path}")
            return True

        except Exception as e:
            logger.error(f"Error exporting to Excel: {e}", exc_info=True)
            return False

    def _format_excel_worksheets(self, writer):
        """Title styling, wrapped shift cells and column widths"""
        title_fill = PatternFill(start_color=COLORS["title_bg"], end_color=COLORS["title_bg"], fill_type="solid")
        title_font = Font(color=COLORS["title_text"], bold=True, size=14)
        wrap = Alignment(wrap_text=True, vertical="top")

        for worksheet in writer.sheets.values():
            title_cell = worksheet.cell(row=1, column=1)
            title_cell.fill = title_fill
            title_cell.font = title_font

            for column in worksheet.columns:
                max_length = 0
                column_letter = column[0].column_letter
                for cell in column:
                    if cell.value is None:
                        continue
                    if isinstance(cell.value, str) and "\n" in cell.value:
                        cell.alignment = wrap
                    longest_line = max(len(line) for line in str(cell.value).split("\n"))
                    max_length = max(max_length, longest_line)
                worksheet.column_dimensions[column_letter].width = min(max_length + 2, 60)

        absent_fill = PatternFill(start_color=COLORS["absent_highlight"], end_color=COLORS["absent_highlight"],
                                  fill_type="solid")
        for row in writer.sheets[SHEET_SUMMARY].iter_rows():
            for cell in row:
                if isinstance(cell.value, str) and "(ABSENT)" in cell.value:
                    cell.fill = absent_fill

    def export_week_pdf(self, week_index: int, output_path: str) -> bool:
        """Export one week as a printable PDF"""
        try:
            if not self.data_manager.get_week_dates(week_index):
                logger.error(f"No data available for week {week_index + 1}")
                return False

            header = self.get_week_header(week_index)
            doc = SimpleDocTemplate(
                output_path,
                pagesize=landscape(A4),
                rightMargin=0.5*inch,
                leftMargin=0.5*inch,
                topMargin=0.5*inch,
                bottomMargin=0.5*inch
            )

            story = [
                Paragraph(header["title"], self.styles['PlanTitle']),
                Paragraph(f"Status: {header['status']} | Version: {header['version']}", self.styles['Normal']),
                Spacer(1, 12),
                self._create_pdf_schedule_table(week_index),
                Spacer(1, 20),
                Paragraph("Weekly Skill Coverage Summary", self.styles['Heading2']),
                self._create_pdf_coverage_table(week_index)
            ]

            doc.build(story)
            logger.info(f"Exported week {week_index + 1} to PDF: {output_path}")
            return True

        except Exception as e:
            logger.error(f"Error creating PDF: {e}", exc_info=True)
            return False

    def _create_pdf_schedule_table(self, week_index: int) -> Table:
        grid_df = self._create_grid_dataframe(week_index)
        data = [list(grid_df.columns)]
        for _, row in grid_df.iterrows():
            data.append([Paragraph(str(value).replace("\n", "<br/>"), self.styles['PlanCell']) for value in row])

        table = Table(data, colWidths=[1.8*inch] + [2.8*inch] * len(SHIFT_TYPES), repeatRows=1)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor(f"#{COLORS['title_bg']}")),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ]))
        return table

    def _create_pdf_coverage_table(self, week_index: int) -> Table:
        coverage_df = self._create_coverage_dataframe(week_index)
        data = [list(coverage_df.columns)] + [[str(v) for v in row] for row in coverage_df.values.tolist()]
        if len(data) == 1:
            data.append(["No skills available", "", "", ""])

        table = Table(data)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor(f"#{COLORS['header_bg']}")),
            ('BACKGROUND', (0, 1), (0, -1), colors.HexColor(f"#{COLORS['skill_highlight']}")),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('ALIGN', (1, 1), (-1, -1), 'CENTER'),
        ]))
        return table

    def export_week_csv(self, week_index: int, output_path: str) -> bool:
        """Export one week as flat CSV rows"""
        try:
            self.create_flat_schedule_dataframe(week_index).to_csv(output_path, index=False)
            return True
        except Exception as e:
            logger.error(f"Error exporting to CSV: {e}", exc_info=True)
            return False


class ExportManager:
    """Manager class for handling all export operations"""

    def __init__(self, data_manager: DataManager, version_manager: Optional[VersionManager] = None):
        self.data_manager = data_manager
        self.report_generator = ReportGenerator(data_manager, version_manager)

    def export_week(self, week_index: int, format_type: str, output_path: str) -> bool:
        """Export a week in the specified format"""
        if format_type.lower() == 'excel':
            return self.report_generator.export_week_excel(week_index, output_path)
        elif format_type.lower() == 'pdf':
            return self.report_generator.export_week_pdf(week_index, output_path)
        elif format_type.lower() == 'csv':
            return self.report_generator.export_week_csv(week_index, output_path)
        else:
            raise ValueError(f"Unsupported format: {format_type}")

    def export_current_week(self, format_type: str, output_path: str) -> bool:
        return self.export_week(self.data_manager.state.current_week, format_type, output_path)

    def get_default_filename(self, format_type: str) -> str:
        """Generate default filename for export"""
        extension = {"excel": "xlsx"}.get(format_type.lower(), format_type.lower())
        return f"ShiftPlanner_Export_{datetime.now().strftime('%Y-%m-%d')}.{extension}"

    def batch_export(self, week_index: int, output_dir: str,
                     formats: List[str] = None) -> Dict[str, bool]:
        """Export a week in multiple formats"""
        if formats is None:
            formats = ['excel', 'pdf', 'csv']

        results = {}
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        for format_type in formats:
            file_path = output_path / self.get_default_filename(format_type)
            try:
                results[format_type] = self.export_week(week_index, format_type, str(file_path))
            except ValueError as e:
                logger.error(f"Error exporting {format_type}: {e}", exc_info=True)
                results[format_type] = False

        return results
