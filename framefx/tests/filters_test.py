"""
Tests for the filter catalog. These check actual pixel values.
"""

import pytest
import sys

from os.path import dirname, join

import numpy as np

sys.path.append(join(dirname(dirname(dirname(__file__)))))

from framefx.frame import PixelBuffer,InvalidArgument
from framefx import filters
from framefx.filters import FILTERS,KIND_POINTWISE,KIND_SEPARABLE,NEEDS_DEPTH

@pytest.fixture
def gray_4x4():
    return PixelBuffer.blank(4, 4, channels=3, value=128)

@pytest.fixture
def noise():
    rs = np.random.RandomState(42)
    return PixelBuffer(rs.randint(0, 256, size=(12,17,3)).astype(np.uint8))

def horizontal_ramp(width=8, height=5):
    row = (np.arange(width) * 255 // (width-1)).astype(np.uint8)
    return PixelBuffer(np.repeat(np.tile(row, (height,1))[:,:,np.newaxis], 3, axis=2))

def run(entry, buf):
    if entry.needs == NEEDS_DEPTH:
        return entry.func(buf, PixelBuffer.blank(buf.width, buf.height, channels=1, value=255))
    return entry.func(buf)

def test_catalog_has_no_dense_filters():
    assert {e.kind for e in FILTERS.values()} <= {KIND_POINTWISE, KIND_SEPARABLE}
    assert filters.STRUCTURAL_ORDER.index('blur') < filters.STRUCTURAL_ORDER.index('sobel_x')
    assert filters.STRUCTURAL_ORDER.index('blur') < filters.STRUCTURAL_ORDER.index('magnitude')
    assert set(filters.TONE_FILTERS) == {'grayscale','custom_grayscale','sepia','negative','emboss'}

def test_negative_gray(gray_4x4):
    out = filters.negative(gray_4x4)
    assert out.shape == (4,4,3)
    assert (out.img == 127).all()

def test_grayscale_of_gray(gray_4x4):
    out = filters.grayscale(gray_4x4)
    assert out.shape == (4,4,1)
    assert (out.img == 128).all()
    assert (filters.custom_grayscale(gray_4x4).img == 128).all()

def test_negative_involution():
    everything = PixelBuffer(np.arange(256*3, dtype=np.uint16).reshape(16,16,3).astype(np.uint8))
    assert filters.negative(filters.negative(everything)) == everything

def test_grayscale_weights():
    blue = PixelBuffer(np.array([[[0,0,255]]], dtype=np.uint8))
    assert filters.grayscale(blue).img[0,0,0] == 28
    assert filters.custom_grayscale(blue).img[0,0,0] == 152
    white = PixelBuffer.blank(1, 1, value=255)
    assert filters.grayscale(white).img[0,0,0] == 255
    assert filters.custom_grayscale(white).img[0,0,0] == 255

def test_grayscale_single_channel_passthrough():
    g = PixelBuffer(np.array([[3,4],[5,6]], dtype=np.uint8))
    assert filters.grayscale(g) == g

def test_sepia_vignette():
    b = PixelBuffer.blank(9, 9, value=100)
    out = filters.sepia_vignette(b)
    assert out.shape == (9,9,3)
    center = out.img[4,4]
    # (393+769+189)*100//1000 etc.
    assert center.tolist() == [135, 120, 93]
    corner = out.img[0,0]
    assert (corner < center).all()
    assert corner.tolist() == [67, 60, 46]
    # symmetric about the center
    assert np.array_equal(out.img, out.img[::-1, ::-1])

def test_sepia_saturates():
    white = PixelBuffer.blank(1, 1, value=255)
    assert filters.sepia_vignette(white).img[0,0].tolist() == [255, 255, 238]

def test_vignette_mask_is_read_only():
    m = filters.vignette_mask(3, 3)
    assert m[1,1,0] == 1.0
    assert not m.flags.writeable

def test_blur_keeps_constant_and_smooths():
    b = PixelBuffer.blank(6, 6, value=90)
    assert filters.blur(b) == b
    spike = PixelBuffer.blank(5, 5, channels=1, value=0)
    spike.img[2,2,0] = 255
    out = filters.blur(spike)
    # 255*6//16 = 95 across, then 95*6//16 = 35 down
    assert out.img[2,2,0] == 35
    assert out.img[0,0,0] == 0

def test_sobel_on_ramp():
    ramp = horizontal_ramp()
    gx = filters.sobel_x_signed(ramp)
    gy = filters.sobel_y_signed(ramp)
    assert (gx[:, 1:-1] > 0).all()
    assert (gy == 0).all()
    assert filters.sobel_x(ramp).channels == 3
    assert (filters.sobel_y(ramp).img == 0).all()

def test_sobel_sign_and_display():
    step = PixelBuffer(np.array([[200,200,0,0]]*3, dtype=np.uint8))
    gx = filters.sobel_x_signed(step)
    assert gx[1,1,0] == -200
    assert gx[1,2,0] == -200
    assert filters.sobel_x(step).img[1,1,0] == 200

def test_magnitude():
    ramp = horizontal_ramp()
    m = filters.magnitude(ramp)
    assert m.shape == (5,8,1)
    gx = filters.sobel_x_signed(filters.grayscale(ramp))
    assert np.array_equal(m.img.astype(int), np.clip(np.abs(gx), 0, 255))
    assert (filters.magnitude(PixelBuffer.blank(3,3,value=50)).img == 0).all()

def test_blur_quantize(noise):
    out = filters.blur_quantize(noise, levels=4)
    assert set(np.unique(out.img)) <= {0,85,170,255}
    assert out.shape == noise.shape

def test_emboss():
    assert (filters.emboss(PixelBuffer.blank(4,4,value=33)).img == 128).all()
    ramp = horizontal_ramp()
    out = filters.emboss(ramp)
    assert (out.img[:, 1:-1] > 128).all()
    assert filters.emboss(filters.negative(ramp)).img[2,3,0] < 128

def test_depth_focus():
    sharp = PixelBuffer.blank(6, 6, channels=1, value=0)
    sharp.img[::2, ::2] = 255
    near = PixelBuffer.blank(3, 3, channels=1, value=255)
    far  = PixelBuffer.blank(3, 3, channels=1, value=0)
    assert filters.depth_focus(sharp, near) == sharp
    assert filters.depth_focus(sharp, far) == filters.blur(sharp)
    with pytest.raises(InvalidArgument):
        filters.depth_focus(sharp, PixelBuffer.blank(3, 3))

def test_resample_nearest():
    d = PixelBuffer(np.array([[1,2],[3,4]], dtype=np.uint8))
    assert filters.resample_nearest(d, 4, 2)[:,:,0].tolist() == [[1,1,2,2],[3,3,4,4]]

@pytest.mark.parametrize("filter_id", list(FILTERS))
@pytest.mark.parametrize("size", [(1,1), (2,2), (1,3)])
def test_tiny_buffers(filter_id, size):
    (w, h) = size
    rs = np.random.RandomState(w*10+h)
    buf = PixelBuffer(rs.randint(0, 256, size=(h,w,3)).astype(np.uint8))
    out = run(FILTERS[filter_id], buf)
    assert (out.width, out.height) == (w, h)
    assert out.img.dtype == np.uint8

@pytest.mark.parametrize("filter_id", list(FILTERS))
def test_separate_and_aliased_destinations(filter_id, noise):
    entry = FILTERS[filter_id]
    expected = run(entry, noise)
    src = noise.copy()
    dst = PixelBuffer(np.zeros(expected.shape, dtype=np.uint8))
    kwargs = {'dst':dst}
    if entry.needs == NEEDS_DEPTH:
        out = entry.func(src, PixelBuffer.blank(src.width, src.height, channels=1, value=255), **kwargs)
    else:
        out = entry.func(src, **kwargs)
    assert out is dst
    assert dst == expected
    assert src == noise
    if expected.shape == src.shape:
        aliased = noise.copy()
        if entry.needs == NEEDS_DEPTH:
            entry.func(aliased, PixelBuffer.blank(src.width, src.height, channels=1, value=255), dst=aliased)
        else:
            entry.func(aliased, dst=aliased)
        assert aliased == expected
