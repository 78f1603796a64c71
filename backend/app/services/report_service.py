"""
Report Service - PDF documents for phase results and final grades
"""

from typing import Dict, Any, List
from datetime import datetime
import io

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import cm
from reportlab.lib.enums import TA_CENTER
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from app.core.config import settings
from app.core.exceptions import DocumentGenerationError
from app.core.logging_config import logger


HEADER_TITLE = "SEIO - Sistema Evaluativo Integral Online"

APPROVED_COLOR = colors.HexColor('#15803d')
FAILED_COLOR = colors.HexColor('#b91c1c')


def _safe_name(name: str) -> str:
    cleaned = "".join(c if c.isalnum() or c in (' ', '-', '_') else '' for c in name)
    return "_".join(cleaned.split())


class ReportService:
    """Builds PDF reports with reportlab and returns them as bytes"""

    def __init__(self):
        styles = getSampleStyleSheet()
        self.title_style = ParagraphStyle(
            'SeioTitle',
            parent=styles['Heading1'],
            fontSize=18,
            textColor=colors.HexColor('#1e3a8a'),
            alignment=TA_CENTER,
            spaceAfter=6
        )
        self.subtitle_style = ParagraphStyle(
            'SeioSubtitle',
            parent=styles['Heading2'],
            fontSize=14,
            textColor=colors.HexColor('#4a5568'),
            alignment=TA_CENTER,
            spaceAfter=16
        )
        self.section_style = ParagraphStyle(
            'SeioSection',
            parent=styles['Heading3'],
            fontSize=12,
            textColor=colors.HexColor('#2d3748'),
            spaceBefore=12,
            spaceAfter=6
        )
        self.body_style = ParagraphStyle(
            'SeioBody',
            parent=styles['Normal'],
            fontSize=10,
            textColor=colors.HexColor('#2d3748'),
            spaceAfter=4
        )
        self.small_style = ParagraphStyle(
            'SeioSmall',
            parent=styles['Normal'],
            fontSize=8,
            textColor=colors.HexColor('#718096'),
            alignment=TA_CENTER
        )

    def _info_table(self, rows: List[List[str]]) -> Table:
        table = Table(rows, colWidths=[5 * cm, 11 * cm])
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (0, -1), colors.HexColor('#e2e8f0')),
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('FONTNAME', (1, 0), (1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#cbd5e0')),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('TOPPADDING', (0, 0), (-1, -1), 6),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
        ]))
        return table

    def _bullet_list(self, items: List[str]) -> List[Paragraph]:
        return [Paragraph(f"• {item}", self.body_style) for item in items]

    def _status_paragraph(self, status: str, approved: bool) -> Paragraph:
        color = APPROVED_COLOR if approved else FAILED_COLOR
        style = ParagraphStyle('SeioStatus', parent=self.subtitle_style, textColor=color, spaceBefore=10)
        return Paragraph(f"<b>{status}</b>", style)

    def _build(self, content: list) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=2 * cm,
            leftMargin=2 * cm,
            topMargin=1.5 * cm,
            bottomMargin=1.5 * cm,
            title=HEADER_TITLE,
        )
        try:
            doc.build(content)
            return buffer.getvalue()
        finally:
            buffer.close()

    def generate_phase_results_pdf(self, data: Dict[str, Any]) -> bytes:
        """
        Phase results report.

        Expected keys: student_name, phase, score. Optional: student_email,
        grade, course_name, subject, teacher_name, failed_indicators,
        passed_indicators, plan (dict with title, deadline, activities).
        """
        try:
            phase = data["phase"]
            score = float(data["score"])
            approved = score >= settings.PHASE_PASSING_SCORE
            status = "APROBÓ" if approved else "NO APROBÓ"

            content = [
                Paragraph(HEADER_TITLE, self.title_style),
                Paragraph(f"Resultados Fase {phase}", self.subtitle_style),
                self._info_table([
                    ["Estudiante", data["student_name"]],
                    ["Correo", data.get("student_email") or "-"],
                    ["Grado", str(data.get("grade") or "-")],
                    ["Curso", data.get("course_name") or "-"],
                    ["Asignatura", data.get("subject") or "-"],
                    ["Docente", data.get("teacher_name") or "-"],
                    ["Nota de la fase", f"{score:.2f}"],
                ]),
                self._status_paragraph(status, approved),
            ]

            failed = data.get("failed_indicators") or []
            if failed:
                content.append(Paragraph("Indicadores no alcanzados", self.section_style))
                content.extend(self._bullet_list(failed))

            passed = data.get("passed_indicators") or []
            if passed:
                content.append(Paragraph("Indicadores alcanzados", self.section_style))
                content.extend(self._bullet_list(passed))

            plan = data.get("plan")
            if plan:
                content.append(Paragraph("Plan de mejoramiento", self.section_style))
                content.append(Paragraph(f"<b>{plan['title']}</b>", self.body_style))
                content.append(Paragraph(f"Fecha límite: {plan['deadline']}", self.body_style))
                for line in (plan.get("activities") or "").splitlines():
                    if line.strip():
                        content.append(Paragraph(line, self.body_style))

            content.append(Spacer(1, 24))
            content.append(Paragraph(
                f"Generado el {datetime.utcnow().strftime('%d/%m/%Y %H:%M')} UTC", self.small_style
            ))
            return self._build(content)

        except (KeyError, ValueError, TypeError) as e:
            logger.error(f"[ReportService] Error generating phase report: {e}", exc_info=True)
            raise DocumentGenerationError(f"Could not generate phase results PDF: {e}", doc_type="phase_results")

    def generate_final_grade_pdf(self, data: Dict[str, Any]) -> bytes:
        """
        Final grade report.

        Expected keys: student_name, phases (dict phase1..phase4), average.
        Optional: student_email, grade, course_name, academic_year.
        """
        try:
            average = float(data["average"] or 0)
            approved = average >= settings.PHASE_PASSING_SCORE
            status = "APROBÓ" if approved else "REPROBÓ"
            phases = data.get("phases") or {}

            rows = [["Fase", "Nota"]]
            for n in range(1, settings.PHASE_COUNT + 1):
                value = phases.get(f"phase{n}")
                rows.append([f"Fase {n}", f"{value:.2f}" if value is not None else "-"])
            rows.append(["Promedio", f"{average:.2f}"])

            grades_table = Table(rows, colWidths=[8 * cm, 8 * cm])
            grades_table.setStyle(TableStyle([
                ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#1e3a8a')),
                ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
                ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
                ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
                ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
                ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#cbd5e0')),
                ('TOPPADDING', (0, 0), (-1, -1), 6),
                ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
            ]))

            content = [
                Paragraph(HEADER_TITLE, self.title_style),
                Paragraph(f"Nota Final - Año {data.get('academic_year') or datetime.utcnow().year}", self.subtitle_style),
                self._info_table([
                    ["Estudiante", data["student_name"]],
                    ["Correo", data.get("student_email") or "-"],
                    ["Grado", str(data.get("grade") or "-")],
                    ["Curso", data.get("course_name") or "-"],
                ]),
                Spacer(1, 12),
                grades_table,
                self._status_paragraph(status, approved),
                Spacer(1, 24),
                Paragraph(
                    f"Generado el {datetime.utcnow().strftime('%d/%m/%Y %H:%M')} UTC", self.small_style
                ),
            ]
            return self._build(content)

        except (KeyError, ValueError, TypeError) as e:
            logger.error(f"[ReportService] Error generating final grade report: {e}", exc_info=True)
            raise DocumentGenerationError(f"Could not generate final grade PDF: {e}", doc_type="final_grade")

    def phase_results_filename(self, student_name: str, phase: int) -> str:
        return f"Resultados_Fase_{phase}_{_safe_name(student_name)}.pdf"

    def final_grade_filename(self, student_name: str) -> str:
        return f"Nota_Final_{_safe_name(student_name)}.pdf"


# Singleton instance
report_service = ReportService()
