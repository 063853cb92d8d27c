"""This module provides the following classes:

PixelBuffer - Holds a rectangular grid of 8-bit samples, one or three channels per pixel.
DetectionRegion - An axis-aligned rectangle reported by a detector for the current frame.

Also:

scratch() - an LRU-cached arena of same-shape scratch arrays. The kernel
operations use it for their intermediate accumulators so that a frame-rate
pipeline does not allocate a new accumulator on every pass.

scale_from_center() - grow or shrink a rectangle about its center.

"""
import copy
import functools
import logging

import numpy as np

logger = logging.getLogger(__name__)

MAXSIZE_SCRATCH = 16

P_NEW  = 'new'
P_CROP = 'crop'

class InvalidArgument(ValueError):
    """Malformed kernel, mismatched buffer dimensions, bad level count, etc.
    This is a contract violation by the caller and is never recovered locally."""

class NotImageError(RuntimeError):
    """cv2 cannot read image"""


@functools.lru_cache(maxsize=MAXSIZE_SCRATCH)
def scratch(shape, dtype='int32', slot=0):
    """Return a reusable scratch array. Contents are undefined; callers overwrite it completely.
    :param slot: - distinguishes two live scratch arrays of the same shape.
    Not thread-safe; the engine processes one frame at a time.
    """
    logger.debug("scratch allocate shape=%s dtype=%s slot=%s",shape,dtype,slot)
    return np.empty(shape, dtype=dtype)


def scale_from_center(*, xy, w, h, scale=1.0, make_ints=True):
    """Given an xy[] point, a width and height, scale it and return a new xy, w, h triple"""
    if w < 0 or h < 0:
        raise InvalidArgument(f"width and height must not be negative, got {w}x{h}")
    center_x = xy[0] + w/2
    center_y = xy[1] + h/2
    new_w = w * scale
    new_h = h * scale
    nxy = (center_x - new_w / 2, center_y - new_h / 2)
    if make_ints:
        new_w = int(new_w)
        new_h = int(new_h)
        nxy = (int(nxy[0]), int(nxy[1]))
    return (nxy, new_w, new_h)


class PixelBuffer:
    """Abstraction to hold an image frame as an (H,W,C) uint8 numpy array, C in {1,3}.
    Color buffers are in R,G,B order.

    A buffer is owned by exactly one stage at a time. A filter either writes
    into a destination buffer it was handed or returns a new one.
    """
    def __init__(self, img, *, history=None):
        """:param img: - an (H,W) or (H,W,C) uint8 array. (H,W) is treated as one channel.
        :param history: - provenance list; a new buffer starts its own.
        """
        img = np.asarray(img)
        if img.dtype != np.uint8:
            raise InvalidArgument(f"pixel samples must be uint8, not {img.dtype}")
        if img.ndim == 2:
            img = img.reshape(img.shape[0], img.shape[1], 1)
        if img.ndim != 3 or img.shape[2] not in (1,3):
            raise InvalidArgument(f"cannot make a 1 or 3 channel buffer from shape {img.shape}")
        if img.shape[0] <= 0 or img.shape[1] <= 0:
            raise InvalidArgument(f"buffer must be at least 1x1, got {img.shape[1]}x{img.shape[0]}")
        self.img = img
        if history is None:
            history = [[P_NEW, (img.shape[1], img.shape[0], img.shape[2])]]
        self.history = history
        self.regions = None     # DetectionRegions attached by a detector stage

    @classmethod
    def blank(cls, width, height, channels=3, value=0):
        return cls(np.full((height, width, channels), value, dtype=np.uint8))

    def __eq__(self, b):
        """Buffers are equal when their pixels are equal. History is provenance, not content."""
        if not isinstance(b, PixelBuffer):
            return NotImplemented
        return self.img.shape == b.img.shape and np.array_equal(self.img, b.img)

    __hash__ = None

    def __repr__(self):
        return f"<PixelBuffer {self.width}x{self.height}x{self.channels} history={self.history}>"

    @property
    def width(self):
        return self.img.shape[1]

    @property
    def height(self):
        return self.img.shape[0]

    @property
    def channels(self):
        return self.img.shape[2]

    @property
    def shape(self):
        """Returns shape. note: shape[0] = height, shape[1]=width, shape[2]==channels"""
        return tuple(self.img.shape)

    def copy(self):
        """Returns a copy that owns its own samples."""
        return PixelBuffer(self.img.copy(), history=copy.copy(self.history))

    def with_regions(self, regions):
        """Returns a shallow copy that shares the samples and carries regions.
        The original buffer is not changed."""
        c = copy.copy(self)
        c.regions = list(regions)
        return c

    def derive(self, img, step, arg=None, dst=None):
        """Return a buffer holding img, recording the step that produced it.
        If dst is given, img is copied into dst (which may be self) and dst is returned;
        otherwise a new buffer wraps img.
        """
        history = copy.copy(self.history)
        history.append([step, arg])
        if dst is None:
            return PixelBuffer(img, history=history)
        if dst.shape != tuple(np.shape(img)):
            raise InvalidArgument(f"destination shape {dst.shape} does not match result shape {np.shape(img)}")
        np.copyto(dst.img, img)
        dst.history = history
        return dst

    def as_color(self):
        """Return a three-channel view. One channel buffers are replicated into R,G,B."""
        if self.channels == 3:
            return self
        return self.derive(np.repeat(self.img, 3, axis=2), 'as_color')

    def crop(self, *, xy, w, h):
        """Return a new buffer that is the old one cropped. Provenance is copied."""
        cropped_img = np.copy( self.img[xy[1]:xy[1]+h, xy[0]:xy[0]+w])
        return self.derive(cropped_img, P_CROP, (xy,(w,h)))


class DetectionRegion:
    """Axis-aligned rectangle (x,y,w,h) in the coordinate space of the frame it was detected in."""
    __slots__ = ('x','y','w','h','text')
    def __init__(self, x, y, w, h, text=""):
        if w < 0 or h < 0:
            raise InvalidArgument(f"region width and height must not be negative, got {w}x{h}")
        self.x = int(x)
        self.y = int(y)
        self.w = int(w)
        self.h = int(h)
        self.text = text

    def __eq__(self, b):
        if not isinstance(b, DetectionRegion):
            return NotImplemented
        return (self.x,self.y,self.w,self.h)==(b.x,b.y,b.w,b.h)

    def __repr__(self):
        return f"<DetectionRegion x={self.x} y={self.y} w={self.w} h={self.h} {self.text}>"

    def clip(self, width, height):
        """Clip to a width x height frame. Returns (x0,y0,x1,y1) with x1,y1 exclusive,
        or None if the region does not overlap the frame."""
        x0 = max(self.x, 0)
        y0 = max(self.y, 0)
        x1 = min(self.x + self.w, width)
        y1 = min(self.y + self.h, height)
        if x0 >= x1 or y0 >= y1:
            return None
        return (x0, y0, x1, y1)

    def scaled(self, scale):
        """Return a region grown (or shrunk) by scale about the same center."""
        if scale == 1.0:
            return self
        (xy, w, h) = scale_from_center(xy=(self.x,self.y), w=self.w, h=self.h, scale=scale)
        return DetectionRegion(xy[0], xy[1], w, h, text=self.text)
