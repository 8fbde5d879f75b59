import io
import logging

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill

from .models import SprintAssignment


logger = logging.getLogger(__name__)

HEADER_FILL = PatternFill(start_color='107C41', end_color='107C41', fill_type='solid')
HEADER_FONT = Font(bold=True, color='FFFFFF', size=12)
HEADER_ALIGNMENT = Alignment(horizontal='center', vertical='center')

PLAN_HEADERS = ['Sprint', 'ID', 'Title', 'Priority', 'Story Points', 'Reason']
UNASSIGNED_HEADERS = ['ID', 'Title', 'Reason']


def _write_headers(ws, headers):
    for col_num, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col_num)
        cell.value = header
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.alignment = HEADER_ALIGNMENT


def build_sprint_workbook(assignment: SprintAssignment) -> Workbook:
    wb = Workbook()
    ws = wb.active
    ws.title = 'Sprint Plan'
    _write_headers(ws, PLAN_HEADERS)

    row_num = 2
    for sprint in assignment.sprints:
        for story in sprint.stories:
            ws.cell(row=row_num, column=1, value=sprint.sprint_number)
            ws.cell(row=row_num, column=2, value=story.story_id)
            ws.cell(row=row_num, column=3, value=story.title)
            ws.cell(row=row_num, column=4, value=story.priority.value)
            ws.cell(row=row_num, column=5, value=story.story_points)
            ws.cell(row=row_num, column=6, value=story.reason)
            for col in (1, 5):
                ws.cell(row=row_num, column=col).alignment = Alignment(horizontal='center')
            row_num += 1

    ws.column_dimensions['A'].width = 10
    ws.column_dimensions['B'].width = 15
    ws.column_dimensions['C'].width = 60
    ws.column_dimensions['D'].width = 12
    ws.column_dimensions['E'].width = 15
    ws.column_dimensions['F'].width = 50

    unassigned = wb.create_sheet('Unassigned')
    _write_headers(unassigned, UNASSIGNED_HEADERS)
    for row_num, story in enumerate(assignment.unassigned_stories, 2):
        unassigned.cell(row=row_num, column=1, value=story.story_id)
        unassigned.cell(row=row_num, column=2, value=story.title)
        unassigned.cell(row=row_num, column=3, value=story.reason)
    unassigned.column_dimensions['A'].width = 15
    unassigned.column_dimensions['B'].width = 60
    unassigned.column_dimensions['C'].width = 45

    return wb


def export_sprint_plan(assignment: SprintAssignment) -> bytes:
    """Render the plan as .xlsx bytes."""
    output = io.BytesIO()
    build_sprint_workbook(assignment).save(output)
    logger.debug("Exported %d sprints to Excel", assignment.total_sprints)
    return output.getvalue()
