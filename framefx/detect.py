"""
Detector and estimator collaborators for the router.

FaceDetector - returns DetectionRegions for a buffer.
DepthEstimator - returns a single channel depth map (near = bright) for a buffer.

The router asks each collaborator available() once, when it is constructed.
"""

import os
import logging
from abc import ABC,abstractmethod

import cv2

from .frame import PixelBuffer,DetectionRegion

logger = logging.getLogger(__name__)


class FaceDetector(ABC):
    def available(self):
        return True

    @abstractmethod
    def detect(self, buf:PixelBuffer):
        """Return a list of DetectionRegion. Deterministic for a given buffer; may be empty."""


class DepthEstimator(ABC):
    def available(self):
        return True

    @abstractmethod
    def estimate(self, buf:PixelBuffer):
        """Return a single channel PixelBuffer depth map, the same size as buf or resampled."""


class FixedRegionDetector(FaceDetector):
    """Reports the same regions for every frame."""
    def __init__(self, regions):
        self.regions = list(regions)

    def detect(self, buf:PixelBuffer):
        return list(self.regions)


class NullDepthEstimator(DepthEstimator):
    """Stands in when no depth model is installed. The router treats it as missing."""
    def available(self):
        return False

    def estimate(self, buf:PixelBuffer):
        raise NotImplementedError("no depth model")


def cv2_cascade(name):
    """Return the path of a harr cascade from the OpenCV installation."""
    thedir = cv2.data.haarcascades
    path = os.path.join( thedir, name)
    if name is None or not os.path.exists(path):
        raise ValueError("Cascade name '"+str(name)+
                         "' must be one of "+" ".join(list(sorted(os.listdir(thedir)))))
    return path


class OpenCVFaceDetector(FaceDetector):
    """OpenCV Face Detector using Harr cascades, frontal then profile."""
    scale_factor  = 1.1
    min_neighbors = 10
    min_size      = (40,40)

    def __init__(self, frontal='haarcascade_frontalface_default.xml', profile='haarcascade_profileface.xml'):
        self.cascades = []
        for (text, name) in (("cv2 frontal_face", frontal), ("cv2 profile_face", profile)):
            if name is None:
                continue
            try:
                cascade = cv2.CascadeClassifier( cv2_cascade(name))
            except ValueError as e:
                logger.warning("%s", e)
                continue
            if cascade.empty():
                logger.warning("cannot load cascade %s", name)
                continue
            self.cascades.append((text, cascade))

    def available(self):
        return len(self.cascades) > 0

    def detect(self, buf:PixelBuffer):
        if buf.channels == 3:
            gray = cv2.cvtColor(buf.img, cv2.COLOR_RGB2GRAY)
        else:
            gray = buf.img[:,:,0]
        regions = []
        for (text, cascade) in self.cascades:
            faces = cascade.detectMultiScale(
                gray, scaleFactor=self.scale_factor, minNeighbors=self.min_neighbors,
                minSize=self.min_size, flags=cv2.CASCADE_SCALE_IMAGE)
            for (x,y,w,h) in faces:
                regions.append(DetectionRegion(x, y, w, h, text=text))
        logger.debug("detected %s faces", len(regions))
        return regions
