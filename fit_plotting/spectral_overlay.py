#!/usr/bin/env python3
"""
SpectralOverlay - incremental multi-curve plot with legend and multi-format export.

Histograms are added one at a time. The first drawn histogram sets up the
axes and ranges; later ones are superimposed with "same". Every added
histogram gets a legend entry, including zero-integral ones that are not
drawn.
"""

import logging
import os
import ROOT
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

ROOT.gROOT.SetBatch(True)

DEFAULT_FORMATS = ['pdf', 'png', 'tex', 'C', 'root']


class SpectralOverlay:
    def __init__(self, line_width: int = 2, xmin: float = 0.0, xmax: float = 1.0,
                 ymin: float = -1, ymax: float = -1, logy: bool = False,
                 title: str = "", xtitle: str = "", ytitle: str = "",
                 name: Optional[str] = None, **canvas_config):
        """
        Args:
            line_width: Line width applied to every added histogram
            xmin, xmax: X-axis range applied to the first drawn histogram
            ymin, ymax: Y-axis range; (-1, -1) leaves it automatic
            logy: Logarithmic y-axis
            title, xtitle, ytitle: Histogram and axis titles
            name: Canvas name (auto-generated if None)
            canvas_config: Overrides for the canvas configuration
        """
        self.line_width = line_width
        self.xmin = xmin
        self.xmax = xmax
        self.ymin = ymin
        self.ymax = ymax
        self.logy = logy
        self.title = title
        self.xtitle = xtitle
        self.ytitle = ytitle

        self.canvas_config = {
            'width': 500,
            'height': 500,
            'right_margin': 0.18,
            'legend_box': (0.85, 0.1, 0.995, 0.9),
            'font': 132,
            'formats': list(DEFAULT_FORMATS),
        }
        self.set_canvas_config(**canvas_config)

        self.histograms: List[ROOT.TH1] = []
        self.legend_entries: List[Tuple[ROOT.TH1, str]] = []

        self.canvas = self._create_canvas(name)
        self.legend = self._create_legend()

    def _create_canvas(self, name: Optional[str] = None) -> ROOT.TCanvas:
        if name is None:
            name = f"overlay_{id(self)}"
        canvas = ROOT.TCanvas(name, self.title)
        canvas.SetCanvasSize(self.canvas_config['width'], self.canvas_config['height'])
        if self.logy:
            canvas.SetLogy()
        canvas.SetRightMargin(self.canvas_config['right_margin'])
        return canvas

    def _create_legend(self) -> ROOT.TLegend:
        legend = ROOT.TLegend(*self.canvas_config['legend_box'])
        legend.SetBorderSize(0)
        legend.SetFillColor(ROOT.kWhite)
        return legend

    def add(self, hist: ROOT.TH1, objname: str, title: str, options: str = "") -> Optional[ROOT.TH1]:
        """
        Add a histogram to the overlay.

        The histogram is cloned as '__<objname>' and detached from any file.
        Its legend entry is registered even when a zero integral keeps it
        from being drawn.

        Args:
            hist: Histogram to add (left untouched)
            objname: Internal object name
            title: Legend title
            options: ROOT draw options

        Returns:
            The drawn clone, or None if the histogram was skipped
        """
        h = hist.Clone(f"__{objname}")
        h.SetDirectory(0)

        h.SetLineWidth(self.line_width)
        h.SetTitle(self.title)
        h.SetXTitle(self.xtitle)
        h.SetYTitle(self.ytitle)

        self.legend.AddEntry(h, title)
        self.legend_entries.append((h, title))

        # Legend entry stays even though the curve is not drawn
        if h.Integral() == 0:
            logger.warning("Not drawing zero-integral histogram '%s' (%s)", objname, title)
            return None

        self.histograms.append(h)
        self.canvas.cd()

        if len(self.histograms) == 1:
            self._configure_axes(h)
            h.Draw(options)
        else:
            h.Draw(f"same {options}".strip())

        self.canvas.Update()
        return h

    def _configure_axes(self, h: ROOT.TH1) -> None:
        """Apply configured ranges and fonts to the base histogram."""
        if not (self.ymin == -1 and self.ymax == -1):
            h.SetAxisRange(self.ymin, self.ymax, "Y")
        h.SetAxisRange(self.xmin, self.xmax, "X")
        h.GetXaxis().SetRangeUser(self.xmin, self.xmax)

        font = self.canvas_config['font']
        h.GetXaxis().SetLabelFont(font)
        h.GetXaxis().SetTitleFont(font)
        h.GetYaxis().SetLabelFont(font)
        h.GetYaxis().SetTitleFont(font)

        if self.logy:
            self.canvas.SetLogy()

    def save(self, output_path: str, formats: Optional[List[str]] = None) -> List[str]:
        """
        Draw the legend and export the canvas.

        Args:
            output_path: Base output path (without extension)
            formats: Export formats (canvas_config['formats'] if None)

        Returns:
            List of written file paths
        """
        if formats is None:
            formats = self.canvas_config['formats']

        directory = os.path.dirname(output_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        self.canvas.cd()
        self.legend.SetTextFont(self.canvas_config['font'])
        self.legend.Draw()
        self.canvas.Update()

        written = []
        for fmt in formats:
            file_path = f"{output_path}.{fmt}"
            self.canvas.SaveAs(file_path, "q")
            written.append(file_path)

        logger.info("Saved %s (%s)", output_path, ", ".join(formats))
        return written

    def copy(self) -> 'SpectralOverlay':
        """New overlay sharing configuration and histograms, with its own canvas and legend."""
        other = SpectralOverlay.__new__(SpectralOverlay)
        other.line_width = self.line_width
        other.xmin, other.xmax = self.xmin, self.xmax
        other.ymin, other.ymax = self.ymin, self.ymax
        other.logy = self.logy
        other.title, other.xtitle, other.ytitle = self.title, self.xtitle, self.ytitle
        other.canvas_config = dict(self.canvas_config)
        other.histograms = list(self.histograms)
        other.legend_entries = list(self.legend_entries)

        other.canvas = other._create_canvas()
        other.canvas.SetRightMargin(self.canvas.GetRightMargin())
        other.legend = self.legend.Clone("")
        return other

    def close(self) -> None:
        """Release the canvas, legend and owned histograms."""
        if self.canvas:
            self.canvas.Close()
        self.canvas = None
        self.legend = None
        self.histograms = []
        self.legend_entries = []

    @staticmethod
    def make_like(hist: ROOT.TH1, name: str) -> ROOT.TH1:
        """Empty histogram with identical binning and axes."""
        hnew = hist.Clone(name)
        hnew.SetDirectory(0)
        hnew.Reset()
        return hnew

    def set_canvas_config(self, **kwargs) -> None:
        """
        Update canvas configuration parameters.

        Args:
            **kwargs: Configuration parameters to update
        """
        for key, value in kwargs.items():
            if key not in self.canvas_config:
                raise ValueError(f"Unknown canvas config parameter: {key}")
            self.canvas_config[key] = value

    def get_canvas_config(self) -> Dict:
        """Get current canvas configuration."""
        return self.canvas_config.copy()
