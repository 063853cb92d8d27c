"""
Tests for the detector collaborators
"""

import pytest
import sys

from os.path import dirname, join

sys.path.append(join(dirname(dirname(dirname(__file__)))))

from framefx.frame import PixelBuffer,DetectionRegion
from framefx import detect

def test_cv2_cascade():
    assert detect.cv2_cascade('haarcascade_frontalface_default.xml').endswith('.xml')
    with pytest.raises(ValueError):
        detect.cv2_cascade('no_such_cascade.xml')

def test_opencv_detector_on_blank():
    d = detect.OpenCVFaceDetector()
    assert d.available()
    assert d.detect(PixelBuffer.blank(64, 48, value=128)) == []
    assert d.detect(PixelBuffer.blank(64, 48, channels=1, value=128)) == []

def test_opencv_detector_without_cascades():
    d = detect.OpenCVFaceDetector(frontal='no_such_cascade.xml', profile=None)
    assert not d.available()

def test_fixed_and_null():
    r = DetectionRegion(1,2,3,4)
    d = detect.FixedRegionDetector([r])
    assert d.available()
    assert d.detect(PixelBuffer.blank(4,4)) == [r]
    assert not detect.NullDepthEstimator().available()
