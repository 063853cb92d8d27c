#!/usr/bin/env python3
"""
Live filter viewer. Shows a camera (or a still image) through the filter engine
and toggles filters from the keyboard:

  g grayscale          h custom grayscale   p sepia+vignette   n negative   e emboss
  b blur               x Sobel X            y Sobel Y          m magnitude
  l blur+quantize      d depth focus        c color faces
  s save frame         q or ESC quit
"""

import sys
import os
import time
import logging
import argparse

from .detect import OpenCVFaceDetector,FixedRegionDetector,NullDepthEstimator
from .frame import DetectionRegion
from .pipeline import SingleThreadedPipeline
from .router import FrameRouter
from .source import SourceOptions,CameraFrameStream,StaticImageFrameStream
from .stage import DetectFaces,FilterFrames,ShowFrames
from .storage import save_frame
from .constants import C

logger = logging.getLogger(__name__)

KEYMAP = {'g':'grayscale',
          'h':'custom_grayscale',
          'p':'sepia',
          'n':'negative',
          'e':'emboss',
          'b':'blur',
          'x':'sobel_x',
          'y':'sobel_y',
          'm':'magnitude',
          'l':'quantize',
          'd':'depth_focus',
          'c':'color_face'}
KEY_SAVE = ord('s')
KEYS_QUIT = (ord('q'), 27)


def parse_region(s):
    try:
        (x,y,w,h) = [int(v) for v in s.split(",")]
    except ValueError:
        raise argparse.ArgumentTypeError(f"region must be x,y,w,h: {s}")
    return DetectionRegion(x,y,w,h,text="fixed")


class KeyHandler:
    """Turns the display's last key into router toggles. Returns True to stop."""
    def __init__(self, router, show, save_root):
        self.router = router
        self.show = show
        self.save_root = save_root

    def __call__(self):
        k = self.show.last_key
        if k is None:
            return False
        if k in KEYS_QUIT:
            return True
        if k == KEY_SAVE and self.show.last_frame is not None:
            path = os.path.join(self.save_root, time.strftime("framefx-%Y%m%d-%H%M%S.png"))
            save_frame(self.show.last_frame, path)
            logger.info("saved %s", path)
            return False
        filter_id = KEYMAP.get(chr(k))
        if filter_id is not None:
            self.router.toggle(filter_id)
        return False


def main():
    parser = argparse.ArgumentParser(description="Apply filters to a live or still image and display the result",
                                     formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    parser.add_argument("--camera", type=int, default=0, help='capture device index')
    parser.add_argument("--image", help='show this still image instead of the camera')
    parser.add_argument("--limit", type=int, help='stop after this many frames')
    parser.add_argument("--save-root", default=".", help='directory for saved frames')
    parser.add_argument("--levels", type=int, default=C.DEFAULT_QUANTIZE_LEVELS, help='quantize level count')
    parser.add_argument("--scale", type=float, default=1.0, help='grow face regions by this much')
    parser.add_argument("--region", type=parse_region, action='append',
                        help='use this fixed x,y,w,h region instead of the face detector (repeatable)')
    parser.add_argument("--filter", action='append', choices=sorted(set(KEYMAP.values())),
                        help='enable this filter at startup (repeatable)')
    parser.add_argument("--verbose", action='store_true')
    parser.add_argument("--debug", action='store_true')
    args = parser.parse_args()

    logging.basicConfig(format='%(asctime)s %(levelname)s %(name)s %(message)s',
                        level=logging.DEBUG if args.debug else logging.INFO if args.verbose else logging.WARNING)

    detector = FixedRegionDetector(args.region) if args.region else OpenCVFaceDetector()
    router = FrameRouter(depth_estimator=NullDepthEstimator(),
                         region_scale=args.scale, quantize_levels=args.levels)
    for filter_id in args.filter or []:
        router.toggle(filter_id)

    o = SourceOptions(limit=args.limit)
    stream = StaticImageFrameStream(args.image, o) if args.image else CameraFrameStream(args.camera, o)

    show = ShowFrames(title="framefx")
    with SingleThreadedPipeline(verbose=args.verbose, debug=args.debug,
                                out=sys.stderr if args.verbose else None) as p:
        p.addLinearPipeline([DetectFaces(detector, router=router), FilterFrames(router), show])
        p.process_stream(stream, until=KeyHandler(router, show, args.save_root))


if __name__=="__main__":
    main()
