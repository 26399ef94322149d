"""
Render repair packages into a printable slide-per-page PDF.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Optional
from xml.sax.saxutils import escape

import requests
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.pagesizes import A4, LETTER, landscape
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import inch, mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from reportlab.platypus import Flowable, Frame, KeepInFrame, Paragraph

from jugaad_engineer.pipeline import RepairPackage, StepAsset

from .slides import Slide, blueprint_icon, build_slides

logger = logging.getLogger(__name__)

FOOTER_TEXT = "Powered by The Jugaad Engineer"
GLYPH_FONT = "ZapfDingbats"


@dataclass(frozen=True)
class SlideLayoutConfig:
    intro_background: colors.Color
    step_background: colors.Color
    blueprint_background: colors.Color
    blueprint_grid: colors.Color
    accent_color: colors.Color
    success_color: colors.Color
    text_color: colors.Color
    muted_color: colors.Color


DEFAULT_LAYOUT = SlideLayoutConfig(
    intro_background=colors.HexColor("#0F172A"),
    step_background=colors.HexColor("#FFFFFF"),
    blueprint_background=colors.HexColor("#1E3A5F"),
    blueprint_grid=colors.HexColor("#2E5A88"),
    accent_color=colors.HexColor("#F59E0B"),
    success_color=colors.HexColor("#22C55E"),
    text_color=colors.HexColor("#0F172A"),
    muted_color=colors.HexColor("#64748B"),
)


PAGE_SIZES = {
    "a4": landscape(A4),
    "letter": landscape(LETTER),
    "widescreen": (13.333 * inch, 7.5 * inch),
}


def _para(text: str) -> str:
    return escape(text or "").replace("\n", "<br/>")


class RepairGuidePDFBuilder:
    """
    Render a repair package as a presentation deck, one slide per page.

    The builder creates:
      * An intro slide with the title, summary, problem and available resources.
      * One slide per step with its illustration (or a blueprint panel) beside the text.
      * A closing "Repair Complete" slide.
    """

    def __init__(
        self,
        *,
        page_size: tuple[float, float] = PAGE_SIZES["widescreen"],
        margin_mm: float = 14.0,
        layout: SlideLayoutConfig = DEFAULT_LAYOUT,
        request_timeout: float = 30.0,
    ) -> None:
        self.page_size = page_size
        self.margin = margin_mm * mm
        self.layout = layout
        self.request_timeout = request_timeout

        self.title_style = ParagraphStyle(
            name="DeckTitle",
            fontName="Helvetica-Bold",
            fontSize=34,
            leading=40,
            alignment=TA_CENTER,
            textColor=colors.white,
            spaceAfter=14,
        )
        self.subtitle_style = ParagraphStyle(
            name="DeckSubtitle",
            fontName="Helvetica",
            fontSize=16,
            leading=21,
            alignment=TA_CENTER,
            textColor=colors.HexColor("#CBD5E1"),
            spaceAfter=18,
        )
        self.section_label_style = ParagraphStyle(
            name="SectionLabel",
            fontName="Helvetica-Bold",
            fontSize=10,
            leading=13,
            alignment=TA_LEFT,
            textColor=self.layout.accent_color,
            spaceAfter=4,
        )
        self.intro_body_style = ParagraphStyle(
            name="IntroBody",
            fontName="Helvetica",
            fontSize=12,
            leading=16,
            alignment=TA_LEFT,
            textColor=colors.white,
            spaceAfter=12,
        )
        self.step_title_style = ParagraphStyle(
            name="StepTitle",
            fontName="Helvetica-Bold",
            fontSize=24,
            leading=29,
            alignment=TA_LEFT,
            textColor=self.layout.text_color,
            spaceAfter=10,
        )
        self.body_style = ParagraphStyle(
            name="Body",
            fontName="Helvetica",
            fontSize=13,
            leading=18,
            alignment=TA_LEFT,
            textColor=self.layout.text_color,
            spaceAfter=12,
        )
        self.footer_style = ParagraphStyle(
            name="Footer",
            fontName="Helvetica-Oblique",
            fontSize=9,
            leading=11,
            alignment=TA_CENTER,
            textColor=self.layout.muted_color,
        )

    def build_from_yaml(self, package_path: Path | str, output_path: Path | str) -> None:
        package = RepairPackage.from_yaml(package_path)
        self.build(package, output_path)

    def build(self, package: RepairPackage, output_path: Path | str) -> Path:
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        pdf = canvas.Canvas(str(output_file), pagesize=self.page_size)
        pdf.setTitle(package.guide.title)
        width, height = self.page_size

        slides = build_slides(package.guide)
        assets = list(package.step_assets)
        total = len(slides)
        for position, slide in enumerate(slides, start=1):
            if slide.kind == "intro":
                self._draw_intro_slide(pdf, slide, width, height)
            elif slide.kind == "step":
                asset = self._asset_for(slide, assets)
                self._draw_step_slide(pdf, slide, asset, width, height)
            else:
                self._draw_outro_slide(pdf, slide, width, height)
            self._draw_footer(pdf, f"{FOOTER_TEXT} • {position} / {total}", width)
            pdf.showPage()

        pdf.save()
        logger.info("Rendered %d slides to %s", total, output_file)
        return output_file

    # ------------------------------------------------------------------ intro slide

    def _draw_intro_slide(
        self,
        pdf: canvas.Canvas,
        slide: Slide,
        width: float,
        height: float,
    ) -> None:
        pdf.setFillColor(self.layout.intro_background)
        pdf.rect(0, 0, width, height, stroke=0, fill=1)

        pdf.setFillColor(self.layout.accent_color)
        pdf.rect(width / 2 - 60, height - self.margin - 6, 120, 4, stroke=0, fill=1)

        header_height = height * 0.45
        header = Frame(
            self.margin,
            height - self.margin - header_height,
            width - 2 * self.margin,
            header_height - 12,
            showBoundary=0,
        )
        self._fill_frame(
            header,
            [
                Paragraph(_para(slide.title), self.title_style),
                Paragraph(_para(slide.body), self.subtitle_style),
            ],
            pdf,
        )

        column_width = (width - 3 * self.margin) / 2
        column_height = height - header_height - 2 * self.margin - 20
        for offset, (label, text) in enumerate(
            (("PROBLEM", slide.problem), ("AVAILABLE RESOURCES", slide.resources))
        ):
            column = Frame(
                self.margin + offset * (column_width + self.margin),
                self.margin + 20,
                column_width,
                column_height,
                showBoundary=0,
            )
            self._fill_frame(
                column,
                [
                    Paragraph(label, self.section_label_style),
                    Paragraph(_para(text), self.intro_body_style),
                ],
                pdf,
            )

    # ------------------------------------------------------------------ step slides

    def _draw_step_slide(
        self,
        pdf: canvas.Canvas,
        slide: Slide,
        asset: StepAsset | None,
        width: float,
        height: float,
    ) -> None:
        pdf.setFillColor(self.layout.step_background)
        pdf.rect(0, 0, width, height, stroke=0, fill=1)

        panel_x = self.margin
        panel_y = self.margin + 20
        panel_width = width * 0.55 - self.margin
        panel_height = height - 2 * self.margin - 20

        image_reader = None
        if asset is not None and asset.has_visual and asset.primary_image:
            image_reader = self._fetch_image(asset.primary_image)

        if image_reader is not None:
            self._draw_fitted_image(pdf, image_reader, panel_x, panel_y, panel_width, panel_height)
        else:
            self._draw_blueprint_panel(pdf, slide, panel_x, panel_y, panel_width, panel_height)

        text_x = width * 0.55 + self.margin / 2
        text_frame = Frame(
            text_x,
            panel_y,
            width - text_x - self.margin,
            panel_height,
            showBoundary=0,
        )
        step = slide.step
        flowables = [
            Paragraph(f"STEP {slide.step_number}", self.section_label_style),
            Paragraph(_para(slide.title), self.step_title_style),
            Paragraph(_para(slide.body), self.body_style),
        ]
        if step is not None and step.materials:
            flowables.append(Paragraph("MATERIALS", self.section_label_style))
            flowables.append(Paragraph(_para(step.materials), self.body_style))
        if step is not None and step.rationale:
            flowables.append(Paragraph("WHY IT WORKS", self.section_label_style))
            flowables.append(Paragraph(_para(step.rationale), self.body_style))
        self._fill_frame(text_frame, flowables, pdf)

    def _draw_fitted_image(
        self,
        pdf: canvas.Canvas,
        image_reader: ImageReader,
        x: float,
        y: float,
        width: float,
        height: float,
    ) -> None:
        img_width, img_height = image_reader.getSize()
        scale = min(width / img_width, height / img_height)
        draw_width = img_width * scale
        draw_height = img_height * scale
        pdf.drawImage(
            image_reader,
            x + (width - draw_width) / 2,
            y + (height - draw_height) / 2,
            draw_width,
            draw_height,
            preserveAspectRatio=True,
            mask="auto",
        )

    def _draw_blueprint_panel(
        self,
        pdf: canvas.Canvas,
        slide: Slide,
        x: float,
        y: float,
        width: float,
        height: float,
    ) -> None:
        icon = blueprint_icon(slide.step.action_type if slide.step else None)

        pdf.saveState()
        pdf.setFillColor(self.layout.blueprint_background)
        pdf.roundRect(x, y, width, height, 14, stroke=0, fill=1)

        pdf.setStrokeColor(self.layout.blueprint_grid)
        pdf.setLineWidth(0.5)
        spacing = 18
        grid_x = x + spacing
        while grid_x < x + width:
            pdf.line(grid_x, y + 4, grid_x, y + height - 4)
            grid_x += spacing
        grid_y = y + spacing
        while grid_y < y + height:
            pdf.line(x + 4, grid_y, x + width - 4, grid_y)
            grid_y += spacing

        cx, cy = x + width / 2, y + height / 2 + 14
        radius = min(width, height) * 0.18
        pdf.setStrokeColor(colors.white)
        pdf.setLineWidth(2)
        pdf.circle(cx, cy, radius, stroke=1, fill=0)

        pdf.setFillColor(colors.white)
        glyph_size = radius * 1.1
        pdf.setFont(GLYPH_FONT, glyph_size)
        pdf.drawCentredString(cx, cy - glyph_size * 0.35, icon.glyph)
        pdf.setFont("Helvetica-Bold", 20)
        pdf.drawCentredString(cx, cy - radius - 34, icon.label.upper())
        pdf.setFont("Helvetica", 10)
        pdf.drawCentredString(cx, cy - radius - 52, "BLUEPRINT MODE")
        pdf.restoreState()

    # ------------------------------------------------------------------ outro slide

    def _draw_outro_slide(
        self,
        pdf: canvas.Canvas,
        slide: Slide,
        width: float,
        height: float,
    ) -> None:
        pdf.setFillColor(self.layout.step_background)
        pdf.rect(0, 0, width, height, stroke=0, fill=1)

        cx, cy = width / 2, height * 0.62
        pdf.saveState()
        pdf.setFillColor(self.layout.success_color)
        pdf.circle(cx, cy, 40, stroke=0, fill=1)
        pdf.setStrokeColor(colors.white)
        pdf.setLineWidth(6)
        pdf.line(cx - 18, cy, cx - 4, cy - 14)
        pdf.line(cx - 4, cy - 14, cx + 20, cy + 14)
        pdf.restoreState()

        pdf.setFillColor(self.layout.text_color)
        pdf.setFont("Helvetica-Bold", 34)
        pdf.drawCentredString(cx, cy - 90, slide.title)
        pdf.setFillColor(self.layout.muted_color)
        pdf.setFont("Helvetica", 16)
        pdf.drawCentredString(cx, cy - 120, slide.body)

    # ------------------------------------------------------------------ helpers

    @staticmethod
    def _asset_for(slide: Slide, assets: list[StepAsset]) -> StepAsset | None:
        if slide.step_number is None:
            return None
        index = slide.step_number - 1
        return assets[index] if 0 <= index < len(assets) else None

    def _fill_frame(self, frame: Frame, flowables: list[Flowable], pdf: canvas.Canvas) -> None:
        """Draw flowables into a frame, scaling them down when they would overflow it."""
        frame.addFromList(
            [KeepInFrame(0, 0, flowables, mode="shrink", vAlign="TOP")],
            pdf,
        )

    def _draw_footer(self, pdf: canvas.Canvas, text: str, width: float) -> None:
        footer_frame = Frame(
            self.margin,
            8,
            width - 2 * self.margin,
            20,
            leftPadding=0,
            bottomPadding=0,
            rightPadding=0,
            topPadding=0,
            showBoundary=0,
        )
        self._fill_frame(footer_frame, [Paragraph(_para(text), self.footer_style)], pdf)

    def _fetch_image(self, source: str) -> Optional[ImageReader]:
        try:
            if source.startswith("data:"):
                _, _, encoded = source.partition(",")
                return ImageReader(BytesIO(base64.b64decode(encoded)))
            if source.lower().startswith(("http://", "https://")):
                response = requests.get(source, timeout=self.request_timeout)
                response.raise_for_status()
                return ImageReader(BytesIO(response.content))
            path = Path(source).expanduser()
            if path.exists():
                return ImageReader(BytesIO(path.read_bytes()))
        except (requests.RequestException, binascii.Error, OSError) as exc:
            logger.warning("Could not load step image %s: %s", source[:80], exc)
        return None
