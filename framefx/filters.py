"""
The filter catalog. Each entry takes a PixelBuffer and returns a PixelBuffer of the
same width and height. Entries accept an optional dst buffer to write into, which may
be the source buffer itself; results are computed into temporaries first, so source
and destination are never assumed to alias.

Every entry is either pointwise or built from the separable kernel operations.
FILTERS records which, and nothing in the catalog uses a dense 2D kernel.
"""

import functools

import numpy as np

from .frame import PixelBuffer, InvalidArgument
from .kernel import Kernel1D, convolve_separable, convolve_separable_signed, gradient_magnitude, quantize
from .constants import C


BLUR_KERNEL   = Kernel1D(C.BLUR_WEIGHTS)
SOBEL_SMOOTH  = Kernel1D(C.SOBEL_SMOOTH)
SOBEL_DIFF    = Kernel1D(C.SOBEL_DIFF)

GROUP_TONE       = 'tone'
GROUP_STRUCTURAL = 'structural'

KIND_POINTWISE = 'pointwise'
KIND_SEPARABLE = 'separable'

NEEDS_DEPTH = 'depth'


def _luma(src, weights):
    if src.channels == 1:
        return src.img.copy()
    a = src.img.astype(np.int32)
    y = (a[:,:,0]*weights[0] + a[:,:,1]*weights[1] + a[:,:,2]*weights[2]) // C.LUMA_SCALE
    return np.clip(y, 0, 255).astype(np.uint8)[:,:,np.newaxis]


def grayscale(src:PixelBuffer, dst=None):
    """Perceptual luma (BT.601 weights). Returns a single channel buffer."""
    return src.derive(_luma(src, C.LUMA_STANDARD), 'grayscale', dst=dst)


def custom_grayscale(src:PixelBuffer, dst=None):
    """Luma weighted toward the blue channel, for a cooler tonal look."""
    return src.derive(_luma(src, C.LUMA_CUSTOM), 'custom_grayscale', dst=dst)


@functools.lru_cache(maxsize=8)
def vignette_mask(height, width, strength=C.VIGNETTE_STRENGTH):
    """(H,W,1) multiplier: 1.0 at the center falling to 1-strength at the corners."""
    cy = (height - 1) / 2
    cx = (width - 1) / 2
    rmax = np.hypot(cx, cy)
    (yy, xx) = np.mgrid[0:height, 0:width]
    if rmax == 0:
        r = np.zeros((height, width))
    else:
        r = np.hypot(xx - cx, yy - cy) / rmax
    mask = (1.0 - strength * r * r)[:,:,np.newaxis]
    mask.flags.writeable = False
    return mask


def sepia_vignette(src:PixelBuffer, dst=None):
    a = src.as_color().img.astype(np.int32)
    tone = (a @ np.array(C.SEPIA_MATRIX, dtype=np.int32).T) // C.SEPIA_SCALE
    np.clip(tone, 0, 255, out=tone)
    out = np.floor(tone * vignette_mask(src.height, src.width)).astype(np.uint8)
    return src.derive(out, 'sepia_vignette', dst=dst)


def blur(src:PixelBuffer, dst=None):
    """5x5 binomial blur as two [1,4,6,4,1]/16 passes."""
    return convolve_separable(src, BLUR_KERNEL, BLUR_KERNEL, dst=dst)


def sobel_x_signed(src:PixelBuffer):
    """Signed horizontal gradient, positive where brightness increases to the right. Range +/-255."""
    return convolve_separable_signed(src, SOBEL_DIFF, SOBEL_SMOOTH)


def sobel_y_signed(src:PixelBuffer):
    """Signed vertical gradient, positive where brightness increases downward. Range +/-255."""
    return convolve_separable_signed(src, SOBEL_SMOOTH, SOBEL_DIFF)


def _display_abs(g):
    return np.clip(np.abs(g), 0, 255).astype(np.uint8)


def sobel_x(src:PixelBuffer, dst=None):
    return src.derive(_display_abs(sobel_x_signed(src)), 'sobel_x', dst=dst)


def sobel_y(src:PixelBuffer, dst=None):
    return src.derive(_display_abs(sobel_y_signed(src)), 'sobel_y', dst=dst)


def magnitude(src:PixelBuffer, dst=None):
    """Gradient magnitude of the luma. Returns a single channel buffer."""
    gray = grayscale(src)
    out = gradient_magnitude(sobel_x_signed(gray), sobel_y_signed(gray)).img
    return src.derive(out, 'magnitude', dst=dst)


def blur_quantize(src:PixelBuffer, levels=C.DEFAULT_QUANTIZE_LEVELS, dst=None):
    """Blur to suppress speckle, then quantize each channel to levels buckets."""
    return quantize(blur(src), levels, dst=dst)


def emboss(src:PixelBuffer, dst=None):
    """Relief shading: the gradient along the down-right diagonal on a mid-gray bias."""
    relief = (sobel_x_signed(src) + sobel_y_signed(src)) // C.EMBOSS_DIVISOR + C.EMBOSS_BIAS
    out = np.clip(relief, 0, 255).astype(np.uint8)
    return src.derive(out, 'emboss', dst=dst)


def negative(src:PixelBuffer, dst=None):
    return src.derive(255 - src.img, 'negative', dst=dst)


def resample_nearest(buf:PixelBuffer, width, height):
    """Nearest-neighbour resample of buf's samples to width x height. Returns the array."""
    if buf.width == width and buf.height == height:
        return buf.img
    rows = (np.arange(height) * buf.height) // height
    cols = (np.arange(width) * buf.width) // width
    return buf.img[rows][:, cols]


def depth_focus(src:PixelBuffer, depth:PixelBuffer, dst=None):
    """Keep near things sharp and blur far things.
    depth is a single channel map with near = 255, of any size; it is resampled to src."""
    if depth.channels != 1:
        raise InvalidArgument(f"depth map must be single channel, got {depth.channels}")
    d = resample_nearest(depth, src.width, src.height).astype(np.int32)
    sharp = src.img.astype(np.int32)
    soft  = blur(src).img.astype(np.int32)
    out = (sharp * d + soft * (255 - d)) // 255
    return src.derive(out.astype(np.uint8), 'depth_focus', dst=dst)


class CatalogEntry:
    """A named filter, the router group it belongs to, and how it is computed."""
    __slots__ = ('filter_id','func','group','kind','needs')
    def __init__(self, filter_id, func, group, kind, needs=None):
        self.filter_id = filter_id
        self.func  = func
        self.group = group
        self.kind  = kind
        self.needs = needs

    def __repr__(self):
        return f"<CatalogEntry {self.filter_id} {self.group} {self.kind}>"


# Structural entries are listed in the order the router applies them.
FILTERS = {e.filter_id:e for e in [
    CatalogEntry('grayscale',        grayscale,        GROUP_TONE, KIND_POINTWISE),
    CatalogEntry('custom_grayscale', custom_grayscale, GROUP_TONE, KIND_POINTWISE),
    CatalogEntry('sepia',            sepia_vignette,   GROUP_TONE, KIND_POINTWISE),
    CatalogEntry('negative',         negative,         GROUP_TONE, KIND_POINTWISE),
    CatalogEntry('emboss',           emboss,           GROUP_TONE, KIND_SEPARABLE),
    CatalogEntry('blur',             blur,             GROUP_STRUCTURAL, KIND_SEPARABLE),
    CatalogEntry('sobel_x',          sobel_x,          GROUP_STRUCTURAL, KIND_SEPARABLE),
    CatalogEntry('sobel_y',          sobel_y,          GROUP_STRUCTURAL, KIND_SEPARABLE),
    CatalogEntry('magnitude',        magnitude,        GROUP_STRUCTURAL, KIND_SEPARABLE),
    CatalogEntry('quantize',         blur_quantize,    GROUP_STRUCTURAL, KIND_SEPARABLE),
    CatalogEntry('depth_focus',      depth_focus,      GROUP_STRUCTURAL, KIND_SEPARABLE, needs=NEEDS_DEPTH),
]}

TONE_FILTERS     = tuple(k for (k,e) in FILTERS.items() if e.group==GROUP_TONE)
STRUCTURAL_ORDER = tuple(k for (k,e) in FILTERS.items() if e.group==GROUP_STRUCTURAL)
