"""
Shared pieces for the PDF and CSV artifacts.

PDFs are built with reportlab's platypus layer. Page totals are only known
once the story has been laid out, so footers are drawn by a canvas that holds
every page back until ``save()``.
"""
from dataclasses import dataclass
from datetime import date
from typing import Callable

from reportlab.lib import colors
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

PDF_MIME = "application/pdf"
CSV_MIME = "text/csv"

# Palette
GREEN = colors.Color(16 / 255, 185 / 255, 129 / 255)
BLUE = colors.Color(59 / 255, 130 / 255, 246 / 255)
BORDER = colors.Color(160 / 255, 160 / 255, 160 / 255)
FOOT_BG = colors.Color(240 / 255, 240 / 255, 240 / 255)
ZEBRA = colors.Color(250 / 255, 250 / 255, 250 / 255)
MINT = colors.Color(240 / 255, 253 / 255, 244 / 255)
INK = colors.Color(30 / 255, 30 / 255, 30 / 255)
MUTED = colors.Color(120 / 255, 120 / 255, 120 / 255)
MONEY_IN = colors.Color(5 / 255, 150 / 255, 105 / 255)
MONEY_OUT = colors.Color(220 / 255, 38 / 255, 38 / 255)
BALANCE_POSITIVE = colors.Color(6 / 255, 90 / 255, 172 / 255)
BALANCE_NEGATIVE = colors.Color(200 / 255, 30 / 255, 30 / 255)

MARGIN = 10 * mm

FooterPainter = Callable[[canvas.Canvas, int, int], None]


@dataclass(frozen=True)
class RenderedDocument:
    """A finished artifact ready to hand to a delivery collaborator"""
    filename: str
    content: bytes
    mime_type: str

    def __len__(self) -> int:
        return len(self.content)


def display_date(day: date) -> str:
    """05 Jan 2024"""
    return day.strftime("%d %b %Y")


def numbered_canvas(paint_footer: FooterPainter):
    """
    Build a canvas class that paints ``paint_footer(canvas, page, total)``
    on every page once the total page count is known.

    Usage:
        doc.build(story, canvasmaker=numbered_canvas(my_footer))
    """

    class NumberedCanvas(canvas.Canvas):

        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            self._saved_page_states = []

        def showPage(self):
            self._saved_page_states.append(dict(self.__dict__))
            self._startPage()

        def save(self):
            total = len(self._saved_page_states)
            for page, state in enumerate(self._saved_page_states, start=1):
                self.__dict__.update(state)
                paint_footer(self, page, total)
                super().showPage()
            super().save()

    return NumberedCanvas
