"""
Tests for the kernel operations
"""

import pytest
import sys

from os.path import dirname, join

import numpy as np

sys.path.append(join(dirname(dirname(dirname(__file__)))))

from framefx.frame import PixelBuffer,InvalidArgument
from framefx.kernel import (Kernel1D, Kernel2D, convolve_separable, convolve_separable_signed,
                            convolve_2d, convolve_2d_signed, gradient_magnitude, quantize, quantize_levels)

BLUR = Kernel1D([1,4,6,4,1])
SMOOTH = Kernel1D([1,2,1])
DIFF = Kernel1D([-1,0,1])

@pytest.fixture
def noise():
    rs = np.random.RandomState(5330)
    return PixelBuffer(rs.randint(0, 256, size=(23,31,3)).astype(np.uint8))

def test_kernel_validation():
    assert BLUR.divisor == 16
    assert BLUR.center == 2
    assert DIFF.divisor == 1
    with pytest.raises(InvalidArgument):
        Kernel1D([1,1])
    with pytest.raises(InvalidArgument):
        Kernel1D([1,2,1], divisor=0)
    with pytest.raises(InvalidArgument):
        Kernel1D([1,0.5,1])
    with pytest.raises(InvalidArgument):
        Kernel2D([[1,1],[1,1]])
    with pytest.raises(InvalidArgument):
        Kernel2D([[1,1,1],[1,1,1]])

def test_outer():
    k = Kernel2D.outer(DIFF, SMOOTH)
    assert k.weights == ((-1,0,1),(-2,0,2),(-1,0,1))
    assert k.divisor == 4

@pytest.mark.parametrize("kh,kv", [(BLUR,BLUR), (SMOOTH,SMOOTH), (Kernel1D([1,1,1]),Kernel1D([1,3,1])),
                                   (Kernel1D([2,3,2]),Kernel1D([2,3,2])), (Kernel1D([-1,3,-1]),Kernel1D([-1,3,-1]))])
def test_separable_matches_dense(noise, kh, kv):
    sep = convolve_separable(noise, kh, kv).img.astype(int)
    dense = convolve_2d(noise, Kernel2D.outer(kh, kv)).img.astype(int)
    assert sep.shape == dense.shape == noise.shape
    assert np.abs(sep - dense).max() <= 1

@pytest.mark.parametrize("kh,kv", [(DIFF,SMOOTH), (SMOOTH,DIFF)])
def test_signed_separable_matches_dense(noise, kh, kv):
    sep = convolve_separable_signed(noise, kh, kv)
    dense = convolve_2d_signed(noise, Kernel2D.outer(kh, kv))
    assert np.abs(sep - dense).max() <= 1
    assert sep.min() < 0

def test_constant_is_preserved():
    b = PixelBuffer.blank(7, 5, value=77)
    assert convolve_separable(b, BLUR, BLUR) == b
    assert (convolve_separable_signed(b, DIFF, SMOOTH) == 0).all()

def test_border_replicates():
    # a single pixel is its own neighbourhood, so every kernel returns it
    one = PixelBuffer(np.array([[[10,20,30]]], dtype=np.uint8))
    assert convolve_separable(one, BLUR, BLUR) == one
    assert convolve_2d(one, Kernel2D.outer(BLUR, BLUR)) == one

    two = PixelBuffer(np.array([[0,0],[160,160]], dtype=np.uint8))
    out = convolve_separable(two, SMOOTH, SMOOTH)
    # column is [0,0,160,160] after padding: (0+0+160)//4=40, (0+320+160)//4=120
    assert out.img[:,:,0].tolist() == [[40,40],[120,120]]

def test_clamping():
    b = PixelBuffer.blank(3, 3, value=200)
    sharpen = Kernel1D([-1,3,-1], divisor=1)
    step = PixelBuffer(np.array([[0,200,200]], dtype=np.uint8))
    assert convolve_separable(b, sharpen, Kernel1D([1])) == b
    out = convolve_separable(step, sharpen, Kernel1D([1]))
    assert out.img[0,:,0].tolist() == [0,255,200]

def test_row_pass_is_not_clamped():
    # sharpening both ways overshoots in the row pass; the column pass must see the full sums
    rs = np.random.RandomState(8)
    b = PixelBuffer(rs.randint(0, 256, size=(8,8)).astype(np.uint8))
    sharpen = Kernel1D([-1,3,-1])
    sep = convolve_separable(b, sharpen, sharpen)
    assert sep == convolve_2d(b, Kernel2D.outer(sharpen, sharpen))
    signed = convolve_separable_signed(b, sharpen, sharpen)
    assert (sep.img == np.clip(signed, 0, 255)).all()

def test_dst_may_be_src(noise):
    expected = convolve_separable(noise, BLUR, BLUR)
    src = noise.copy()
    r = convolve_separable(src, BLUR, BLUR, dst=src)
    assert r is src
    assert src == expected

def test_gradient_magnitude():
    assert gradient_magnitude(np.array([[0]]), np.array([[0]])).img[0,0,0] == 0
    assert gradient_magnitude(np.array([[3]]), np.array([[4]])).img[0,0,0] == 5
    assert gradient_magnitude(np.array([[-3]]), np.array([[4]])).img[0,0,0] == 5
    assert gradient_magnitude(np.array([[300]]), np.array([[300]])).img[0,0,0] == 255
    assert gradient_magnitude(np.array([[1]]), np.array([[1]])).img[0,0,0] == 1

def test_gradient_magnitude_contract():
    with pytest.raises(InvalidArgument):
        gradient_magnitude(np.zeros((2,2)), np.zeros((2,3)))
    with pytest.raises(InvalidArgument):
        gradient_magnitude(np.zeros((2,2,3)), np.zeros((2,2,3)))

def test_quantize_levels():
    assert quantize_levels(2) == [0,255]
    assert quantize_levels(3) == [0,128,255]
    assert len(quantize_levels(10)) == 10
    assert quantize_levels(256) == list(range(256))
    for bad in (1, 0, -3, 257, 2.5, True):
        with pytest.raises(InvalidArgument):
            quantize_levels(bad)

@pytest.mark.parametrize("levels", [2,3,4,7,10,16,255,256])
def test_quantize_buckets_and_idempotent(levels):
    ramp = PixelBuffer(np.arange(256, dtype=np.uint8).reshape(16,16))
    q = quantize(ramp, levels)
    assert set(np.unique(q.img)) <= set(quantize_levels(levels))
    assert quantize(q, levels) == q

def test_quantize_nearest():
    b = PixelBuffer(np.array([[0,63,64,127,128,191,192,255]], dtype=np.uint8))
    # buckets 0,128,255; 64 is exactly half way and goes up
    assert quantize(b, 3).img[0,:,0].tolist() == [0,0,128,128,128,128,255,255]

def test_quantize_rejects_bad_levels():
    with pytest.raises(InvalidArgument):
        quantize(PixelBuffer.blank(2,2), 1)
