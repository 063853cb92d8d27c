"""
This module provides frame sources: generators of three channel RGB PixelBuffers.

CameraFrameStream(camera) - live frames from a capture device
StaticImageFrameStream(path) - the same still image, served again and again
FrameStream(root) - every image under a directory, in sort order

Details:
https://docs.opencv.org/4.x/dd/d43/tutorial_py_video_display.html

"""

import os
import sys
import mimetypes
import logging
import random

import cv2
import numpy as np

from .frame import PixelBuffer,NotImageError
from .constants import C

logger = logging.getLogger(__name__)

class SourceOptions:
    __slots__=('limit','sampling','frameWidth','frameHeight','counter')
    def __init__(self,**kwargs):
        self.limit = None
        self.sampling = 1.0     # fraction we keep
        self.frameWidth = None
        self.frameHeight = None
        self.counter = 0
        for (k,v) in kwargs.items():
            setattr(self,k,v)

    def draw(self):
        """Return True if we should sample."""
        return self.sampling >= random.random()

    def atlimit(self):
        """Increment counter and return True if we are at the limit."""
        self.counter += 1
        if self.limit is None:
            return False
        elif self.counter >= self.limit:
            return True
        return False


def from_bgr(img, src):
    """Wrap an OpenCV BGR or gray image as an RGB PixelBuffer."""
    if img.ndim == 2:
        img = cv2.cvtColor(img, cv2.COLOR_GRAY2RGB)
    else:
        img = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
    return PixelBuffer(img, history=[['src', src]])


def image_read(path):
    """Read an image file as an RGB PixelBuffer."""
    with open(path,"rb") as f:
        data = f.read()
    img = cv2.imdecode(np.frombuffer(data, np.uint8), cv2.IMREAD_COLOR)
    if img is None:
        raise NotImageError("cannot read:"+path)
    return from_bgr(img, path)


def StaticImageFrameStream(path, o:SourceOptions=None):
    """Serve one image repeatedly. Each frame is a fresh copy the caller owns."""
    o = o if o is not None else SourceOptions()
    buf = image_read(path)
    while True:
        if o.draw():
            yield buf.copy()
        if o.atlimit():
            return


def FrameStream(root, o:SourceOptions=None):
    """Generator for the images under root (or root itself if it is a file).
    Returns frames in sort order within each directory"""
    o = o if o is not None else SourceOptions()
    if not os.path.isdir(root):
        yield image_read(root)
        return
    for (dirpath, dirnames, filenames) in os.walk(root): # pylint: disable=unused-variable
        dirnames.sort()                                  # makes the directories recurse in sort order
        for fname in sorted(filenames):
            if os.path.splitext(fname)[1].lower() not in C.IMAGE_EXTENSIONS:
                continue
            mtype = mimetypes.guess_type(fname)[0]
            if mtype is None or mtype.split("/")[0] != 'image':
                continue
            if o.draw():
                path = os.path.join(dirpath, fname)
                try:
                    buf = image_read(path)
                except NotImageError as e:
                    print(f"Not an image file '{path}': {e}",file=sys.stderr)
                    continue
                yield buf
                if o.atlimit():
                    return


def CameraFrameStream(camera=0, o:SourceOptions=None):
    """Frames from a capture device until it stops delivering. Failed reads are not retried."""
    # https://docs.opencv.org/3.4/dd/d01/group__videoio__c.html
    o = o if o is not None else SourceOptions()
    cap = cv2.VideoCapture(camera)
    if not cap.isOpened():
        raise RuntimeError(f"cannot open camera {camera}")
    if o.frameWidth is not None:
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, o.frameWidth)
    if o.frameHeight is not None:
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, o.frameHeight)
    try:
        while True:
            ret, img = cap.read()
            if not ret:
                logger.info("camera %s: no more frames", camera)
                break
            if o.draw():
                yield from_bgr(img, f"camera{camera}")
            if o.atlimit():
                return
    finally:
        cap.release()
