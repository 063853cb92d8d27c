"""
Primitive convolution and reduction operators that the filter catalog is built from.

All operators work directly on the (H,W,C) sample arrays of PixelBuffers:

convolve_separable  - row pass then column pass, each floor-divided; the result is clamped to [0,255]
convolve_2d         - dense reference form of the same thing, used to check the separable path
gradient_magnitude  - round(sqrt(gx*gx + gy*gy)) per pixel
quantize            - snap every sample to the nearest of N evenly spaced levels

Kernels are correlated with the image: weight i is applied to the sample at
offset i - center. Borders replicate the edge samples, so nothing is ever read
outside the buffer and every output sample is defined.

The separable path always runs the horizontal pass first. Because each pass
floor-divides by its own divisor, swapping the order can change results by one
intensity unit.
"""


import numpy as np

from .frame import PixelBuffer, InvalidArgument, scratch
from .constants import C


H_SLOT = 0
V_SLOT = 1

def _check_weight(w):
    if isinstance(w, bool) or int(w) != w:
        raise InvalidArgument(f"kernel weights must be integers, got {w!r}")
    return int(w)


class Kernel1D:
    """Odd-length sequence of signed integer weights plus a normalization divisor."""
    def __init__(self, weights, divisor=None):
        self.weights = tuple(_check_weight(w) for w in weights)
        if len(self.weights) % 2 == 0:
            raise InvalidArgument(f"kernel length must be odd, got {len(self.weights)}")
        if divisor is None:
            divisor = sum(self.weights) or 1
        self.divisor = _check_weight(divisor)
        if self.divisor == 0:
            raise InvalidArgument("kernel divisor must not be zero")

    @property
    def center(self):
        return (len(self.weights) - 1) // 2

    def __len__(self):
        return len(self.weights)

    def __repr__(self):
        return f"<Kernel1D {list(self.weights)}/{self.divisor}>"


class Kernel2D:
    """Square matrix of signed integer weights plus divisor.
    Only the reference path uses it; the catalog has no filter that is not separable."""
    def __init__(self, weights, divisor=None):
        rows = [tuple(_check_weight(w) for w in row) for row in weights]
        n = len(rows)
        if n % 2 == 0 or any(len(row) != n for row in rows):
            raise InvalidArgument(f"2D kernel must be square with odd size, got {n} rows")
        self.weights = tuple(rows)
        if divisor is None:
            divisor = sum(sum(row) for row in rows) or 1
        self.divisor = _check_weight(divisor)
        if self.divisor == 0:
            raise InvalidArgument("kernel divisor must not be zero")

    @classmethod
    def outer(cls, kernel_h, kernel_v):
        """The dense kernel equivalent to running kernel_h across rows and kernel_v down columns."""
        if len(kernel_h) != len(kernel_v):
            raise InvalidArgument("separable kernels must have the same length")
        return cls([[wv * wh for wh in kernel_h.weights] for wv in kernel_v.weights],
                   divisor=kernel_h.divisor * kernel_v.divisor)

    @property
    def center(self):
        return (len(self.weights) - 1) // 2

    def __len__(self):
        return len(self.weights)


def _samples(src):
    """Signed working copy of the samples of a PixelBuffer or array."""
    if isinstance(src, PixelBuffer):
        return src.img.astype(np.int32)
    a = np.asarray(src, dtype=np.int32)
    if a.ndim == 2:
        a = a.reshape(a.shape[0], a.shape[1], 1)
    return a


def _pass(a, kernel, axis, slot, clamp):
    """One 1D pass along axis (1 = across rows, 0 = down columns). Returns a scratch array."""
    n = a.shape[axis]
    pad_width = [(0,0), (0,0), (0,0)]
    pad_width[axis] = (kernel.center, kernel.center)
    padded = np.pad(a, pad_width, mode='edge')
    acc = scratch(a.shape, 'int32', slot)
    acc.fill(0)
    for (i,w) in enumerate(kernel.weights):
        if w == 0:
            continue
        window = padded[:, i:i+n] if axis == 1 else padded[i:i+n]
        acc += w * window
    np.floor_divide(acc, kernel.divisor, out=acc)
    if clamp:
        np.clip(acc, 0, 255, out=acc)
    return acc


def convolve_separable_signed(src, kernel_h, kernel_v):
    """Horizontal then vertical pass with no clamping. Returns a new int32 (H,W,C) array."""
    a = _samples(src)
    mid = _pass(a, kernel_h, 1, H_SLOT, clamp=False)
    return _pass(mid, kernel_v, 0, V_SLOT, clamp=False).copy()


def convolve_separable(src:PixelBuffer, kernel_h, kernel_v, dst=None):
    """Apply kernel_h across each row, then kernel_v down each column of the result.
    Each pass floor-divides by its kernel's divisor. Only the final result is clamped
    to [0,255]; the row pass keeps negative and overflowing sums for the column pass."""
    a = _samples(src)
    mid = _pass(a, kernel_h, 1, H_SLOT, clamp=False)
    out = _pass(mid, kernel_v, 0, V_SLOT, clamp=True).astype(np.uint8)
    return src.derive(out, 'convolve_separable', (kernel_h.weights, kernel_v.weights), dst=dst)


def convolve_2d_signed(src, kernel2d):
    """Dense pass with no clamping. Returns a new int32 (H,W,C) array."""
    a = _samples(src)
    r = kernel2d.center
    (h, w) = a.shape[:2]
    padded = np.pad(a, ((r,r), (r,r), (0,0)), mode='edge')
    acc = np.zeros(a.shape, dtype=np.int32)
    for (i,row) in enumerate(kernel2d.weights):
        for (j,wt) in enumerate(row):
            if wt:
                acc += wt * padded[i:i+h, j:j+w]
    np.floor_divide(acc, kernel2d.divisor, out=acc)
    return acc


def convolve_2d(src:PixelBuffer, kernel2d, dst=None):
    """Reference form of convolve_separable. Development-time only; the pipeline never calls it."""
    out = np.clip(convolve_2d_signed(src, kernel2d), 0, 255).astype(np.uint8)
    return src.derive(out, 'convolve_2d', kernel2d.weights, dst=dst)


def _single_channel(g, name):
    a = _samples(g)
    if a.ndim != 3 or a.shape[2] != 1:
        raise InvalidArgument(f"{name} must be single channel, got shape {a.shape}")
    return a


def gradient_magnitude(gx, gy, dst=None):
    """Per pixel round(sqrt(gx^2 + gy^2)) clamped to [0,255].
    gx and gy are signed single-channel arrays (or PixelBuffers) of the same dimensions."""
    ax = _single_channel(gx, "gx")
    ay = _single_channel(gy, "gy")
    if ax.shape != ay.shape:
        raise InvalidArgument(f"gx shape {ax.shape} does not match gy shape {ay.shape}")
    fx = ax.astype(np.float64)
    fy = ay.astype(np.float64)
    out = np.clip(np.rint(np.sqrt(fx*fx + fy*fy)), 0, 255).astype(np.uint8)
    base = gx if isinstance(gx, PixelBuffer) else PixelBuffer(out)
    return base.derive(out, 'gradient_magnitude', dst=dst)


def _check_levels(levels):
    if isinstance(levels, bool) or not isinstance(levels, (int, np.integer)):
        raise InvalidArgument(f"levels must be an integer, got {levels!r}")
    if levels < 2 or levels > C.MAX_LEVELS:
        raise InvalidArgument(f"levels must be between 2 and {C.MAX_LEVELS}, got {levels}")
    return int(levels)


def quantize_levels(levels):
    """The sorted bucket values for a level count: round(k*255/(levels-1)) for k in 0..levels-1."""
    n = _check_levels(levels) - 1
    return [(2*k*255 + n) // (2*n) for k in range(n+1)]


def quantize(src:PixelBuffer, levels, dst=None):
    """Snap every sample to the nearest bucket; ties go to the upper bucket."""
    n = _check_levels(levels) - 1
    a = src.img.astype(np.int32)
    k = (2*a*n + 255) // 510
    out = ((2*k*255 + n) // (2*n)).astype(np.uint8)
    return src.derive(out, 'quantize', levels, dst=dst)
