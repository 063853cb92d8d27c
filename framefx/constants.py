"""Constants"""

# pylint: disable=too-few-public-methods
class C:
    """Constants"""
    IMAGE_EXTENSIONS = set(['.jpg','.jpeg','.png','.bmp'])

    # RGB order; the OpenCV collaborators swap to BGR at the boundary
    BLUE  = (0,0,255)
    GREEN = (0,255,0)
    RED   = (255,0,0)
    HIGHLIGHT = GREEN

    # Integer luma weights for (R,G,B). Each set sums to LUMA_SCALE.
    LUMA_SCALE = 256
    LUMA_STANDARD = (77, 150, 29)
    LUMA_CUSTOM   = (26, 77, 153)

    # Sepia matrix, rows produce R', G', B' from (R,G,B), scaled by SEPIA_SCALE
    SEPIA_SCALE = 1000
    SEPIA_MATRIX = ((393, 769, 189),
                    (349, 686, 168),
                    (272, 534, 131))
    VIGNETTE_STRENGTH = 0.5

    BLUR_WEIGHTS = (1, 4, 6, 4, 1)
    SOBEL_SMOOTH = (1, 2, 1)
    SOBEL_DIFF   = (-1, 0, 1)

    DEFAULT_QUANTIZE_LEVELS = 10
    EMBOSS_BIAS = 128
    EMBOSS_DIVISOR = 2          # Sobel outputs are within +/-255, so (gx+gy)/2 is too

    MAX_LEVELS = 256
