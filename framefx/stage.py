"""
Stage implementation and some simple stages.
"""

import os
import time
import math
import logging
import functools
from abc import ABC

import cv2

from .frame import PixelBuffer
from .router import COLOR_FACE
from .storage import save_frame

DEFAULT_TEMPLATE="{counter_div_1000:03}/frame{counter:08}.png"

logger = logging.getLogger(__name__)

def validate_stage(stage):
    if not hasattr(stage,'count'):
        raise RuntimeError(str(stage) + "did not call super().__init__()")


@functools.lru_cache(maxsize=128)
def caching_mkdir(path):
    os.makedirs(path, exist_ok=True)


class Stage(ABC):
    """Abstract base class for processing DAG"""

    def __init__(self, input_filter=None, output_filter=None):
        self.next_stages = []
        self.sum_t   = 0
        self.sum_t2  = 0
        self.count   = 0
        self.pipeline = None    # my pipeline
        self.input_filter = input_filter
        self.output_filter = output_filter

    def process(self, f:PixelBuffer):
        """Called to process. Default behavior is to copy frame to output."""
        self.output(f)

    def _run_frame(self,f):
        """called at the start of processing of this stage.
        Processes and then passes the frame to the output stages."""
        t0 = time.time()
        if (self.input_filter is None) or self.input_filter(f):
            self.process(f)
        t = time.time() - t0
        self.sum_t  += t
        self.sum_t2 += (t*t)
        self.count  += 1

    def output(self,f):
        """output(f) queues f for output when the current stage is done.
        If f is modified, it needs to be copied.
        """
        if (self.output_filter is not None) and not self.output_filter(f):
            return            # filtered out
        for s in self.next_stages:
            self.pipeline.queue_output_stage_frame_pair( (s,f) )

    def pipeline_shutdown(self):
        """Called when pipeline is being shut down."""

    @property
    def t_mean(self):
        return self.sum_t / self.count if self.count>0 else float("nan")

    @property
    def t2_mean(self):
        return self.sum_t2 / self.count if self.count>0 else float("nan")

    @property
    def t_variance(self):
        return self.t2_mean - self.t_mean * self.t_mean

    @property
    def t_stddev(self):
        return math.sqrt(max(self.t_variance, 0.0))


class FilterFrames(Stage):
    """Runs every frame through a FrameRouter and outputs the display buffer.
    Regions attached by DetectFaces are handed to the router for color_face."""
    def __init__(self, router, **kwargs):
        super().__init__(**kwargs)
        self.router = router

    def process(self, f:PixelBuffer):
        self.output(self.router.process_frame(f, f.regions))


class DetectFaces(Stage):
    """Runs a FaceDetector on every frame and outputs a copy carrying the regions.
    :param router: - if given, only detect while the router has color_face enabled.
    Frames pass through without regions when the detector is unavailable.
    """
    def __init__(self, detector, *, router=None, **kwargs):
        super().__init__(**kwargs)
        self.detector = detector if (detector is not None and detector.available()) else None
        self.router = router
        if self.detector is None:
            logger.warning("face detector unavailable; frames will carry no regions")

    def process(self, f:PixelBuffer):
        if self.detector is None or (self.router is not None and COLOR_FACE not in self.router.state):
            self.output(f)
            return
        # we will be attaching regions, so output a copy of the frame
        self.output(f.with_regions(self.detector.detect(f)))


class ShowFrames(Stage):
    """Shows every frame coming through, remembers the last key pressed, and then copies to output"""
    wait = 1
    def __init__(self, title="framefx", wait=None, **kwargs):
        super().__init__(**kwargs)
        self.title = title
        self.last_key = None
        self.last_frame = None
        if wait is not None:
            self.wait=wait
        cv2.namedWindow(self.title, 0)

    def process(self, f:PixelBuffer):
        img = f.img[:,:,0] if f.channels == 1 else cv2.cvtColor(f.img, cv2.COLOR_RGB2BGR)
        cv2.imshow(self.title, img)
        k = cv2.waitKey(self.wait) & 0xff
        self.last_key = None if k == 0xff else k
        self.last_frame = f
        self.output(f)

    def pipeline_shutdown(self):
        cv2.destroyWindow(self.title)


class Collect(Stage):
    """Keeps every frame it is given. A sink."""
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.frames = []

    def process(self, f:PixelBuffer):
        self.frames.append(f)
        self.output(f)


class SaveFramesToDirectory(Stage):
    def __init__(self, root, *, template=DEFAULT_TEMPLATE, nonstop=False, **kwargs):
        """Save the images to the directory and move on.
        Format is determined by template.
        :param nonstop: - If True, do not stop for failed writer
        """
        super().__init__(**kwargs)
        self.root     = root
        self.counter  = 0
        self.error_counter = 0
        self.template = template
        self.nonstop  = nonstop

    def process(self, f:PixelBuffer):
        while True:
            path = os.path.join(self.root, self.template.format(counter_div_1000=self.counter//1000,
                                                                counter=self.counter))
            if not os.path.exists(path):
                break
            self.counter += 1

        # Save and increment counter
        try:
            self.counter += 1
            caching_mkdir( os.path.dirname( path ))
            save_frame(f, path)
        except OSError as e:
            if self.nonstop:
                logger.error("Could not write %s %s",path,str(e))
                self.error_counter += 1
            else:
                raise
        # and copy the frame to the output (we are not a sink!)
        self.output(f)


def Connect(prev_:Stage, next_:Stage):
    """Make the output of stage prev_ go to next_"""
    validate_stage(prev_)
    validate_stage(next_)
    if next_ not in prev_.next_stages:
        prev_.next_stages.append(next_)
