"""
Selective compositing: restore one buffer's pixels inside detected regions of another.

Used for "color faces on a grayscale background": base is the grayscale frame,
color is the original frame and the regions are the detected face boxes.
"""

import logging

import numpy as np

from .frame import PixelBuffer, InvalidArgument
from .constants import C

logger = logging.getLogger(__name__)


def outline(img, x0, y0, x1, y1, color):
    """Draw a one pixel rectangle on the inside edge of [x0,x1) x [y0,y1)."""
    img[y0,   x0:x1] = color
    img[y1-1, x0:x1] = color
    img[y0:y1, x0  ] = color
    img[y0:y1, x1-1] = color


def composite(base:PixelBuffer, color:PixelBuffer, regions, dst=None, highlight=C.HIGHLIGHT):
    """Copy base, then copy each region of color over it and outline the region.

    Regions are clipped to the frame; regions entirely outside it are ignored.
    They are applied in the order given, so later regions overwrite earlier ones.
    If either input has three channels the result has three channels.
    """
    if (base.width, base.height) != (color.width, color.height):
        raise InvalidArgument(f"base is {base.width}x{base.height} but color is {color.width}x{color.height}")
    if base.channels != color.channels:
        base  = base.as_color()
        color = color.as_color()
    out = base.img.copy()
    if out.shape[2] == 1:
        highlight = (max(highlight),)
    highlight = np.array(highlight, dtype=np.uint8)
    count = 0
    for region in regions:
        clipped = region.clip(base.width, base.height)
        if clipped is None:
            logger.debug("region %s is outside the %sx%s frame",region,base.width,base.height)
            continue
        (x0, y0, x1, y1) = clipped
        out[y0:y1, x0:x1] = color.img[y0:y1, x0:x1]
        outline(out, x0, y0, x1, y1, highlight)
        count += 1
    return base.derive(out, 'composite', count, dst=dst)
