"""
Per-frame routing: decide which filters apply to a frame, and in what order.

FilterState holds the set of enabled filters. It starts empty (pass-through) and
changes only through toggle(). FrameRouter owns one FilterState and runs each
frame through:

  1. the active tone filter, if any (at most one is ever enabled)
  2. the active structural filters, in STRUCTURAL_ORDER
  3. selective colorization, if enabled: the grayscale raw frame with the raw
     colors restored inside the face regions

The enabled set is read once at the start of each frame, so a toggle takes
effect at the next frame boundary and never part way through a frame.
"""

import logging

from .frame import PixelBuffer, InvalidArgument
from .filters import FILTERS, TONE_FILTERS, STRUCTURAL_ORDER, NEEDS_DEPTH, grayscale
from .composite import composite
from .constants import C

logger = logging.getLogger(__name__)

COLOR_FACE  = 'color_face'
NEEDS_FACES = 'faces'

ALL_FILTERS = tuple(FILTERS) + (COLOR_FACE,)


class MissingCollaborator(RuntimeError):
    """A filter needs a detector or estimator that is not available."""
    def __init__(self, collaborator):
        super().__init__(f"no {collaborator} collaborator available")
        self.collaborator = collaborator


class FilterState:
    """The set of enabled filter ids, with tone filters mutually exclusive."""
    def __init__(self):
        self.enabled = set()

    def toggle(self, filter_id):
        """Flip filter_id. Enabling a tone filter disables any other tone filter.
        Returns True if filter_id is now enabled."""
        if filter_id not in ALL_FILTERS:
            raise InvalidArgument(f"unknown filter '{filter_id}'; must be one of {' '.join(ALL_FILTERS)}")
        if filter_id in self.enabled:
            self.enabled.discard(filter_id)
            return False
        if filter_id in TONE_FILTERS:
            self.enabled.difference_update(TONE_FILTERS)
        self.enabled.add(filter_id)
        return True

    def snapshot(self):
        return frozenset(self.enabled)

    def __contains__(self, filter_id):
        return filter_id in self.enabled

    def __repr__(self):
        return f"<FilterState {sorted(self.enabled)}>"


def available(collaborator):
    return collaborator is not None and collaborator.available()


class FrameRouter:
    """Applies the enabled filters to each frame.
    :param face_detector: - optional; supplies regions when the caller does not.
    :param depth_estimator: - optional; required by depth_focus.
    :param region_scale: - grow detected regions about their centers before compositing.
    Collaborators are checked once here. One that is unavailable stays unavailable for
    the life of the router.
    """
    def __init__(self, face_detector=None, depth_estimator=None, *,
                 region_scale=1.0, quantize_levels=C.DEFAULT_QUANTIZE_LEVELS):
        self.state = FilterState()
        self.collaborators = {NEEDS_FACES: face_detector if available(face_detector) else None,
                              NEEDS_DEPTH: depth_estimator if available(depth_estimator) else None}
        self.region_scale = region_scale
        self.quantize_levels = quantize_levels
        self.reported = set()
        self.count = 0
        for (name, c) in self.collaborators.items():
            logger.debug("collaborator %s: %s", name, c if c is not None else "unavailable")

    def toggle(self, filter_id):
        now = self.state.toggle(filter_id)
        logger.info("%s %s", filter_id, "on" if now else "off")
        return now

    def collaborator(self, name):
        c = self.collaborators.get(name)
        if c is None:
            raise MissingCollaborator(name)
        return c

    def report(self, filter_id, e):
        """Log a missing collaborator the first time it is needed, not on every frame."""
        if e.collaborator not in self.reported:
            self.reported.add(e.collaborator)
            logger.warning("%s skipped: %s", filter_id, e)

    def apply(self, filter_id, buf, raw):
        entry = FILTERS[filter_id]
        if entry.needs == NEEDS_DEPTH:
            depth = self.collaborator(NEEDS_DEPTH).estimate(raw)
            return entry.func(buf, depth)
        if filter_id == 'quantize':
            return entry.func(buf, self.quantize_levels)
        return entry.func(buf)

    def process_frame(self, raw:PixelBuffer, regions=None):
        """Return the display buffer for raw. With nothing enabled this is raw itself.
        :param regions: - DetectionRegions for this frame, used by color_face.
        """
        active = self.state.snapshot()
        self.count += 1
        out = raw

        tone = next((fid for fid in TONE_FILTERS if fid in active), None)
        if tone is not None:
            out = self.apply(tone, out, raw)

        for fid in STRUCTURAL_ORDER:
            if fid in active:
                try:
                    out = self.apply(fid, out, raw)
                except MissingCollaborator as e:
                    self.report(fid, e)

        if COLOR_FACE in active:
            try:
                if regions is None:
                    regions = self.collaborator(NEEDS_FACES).detect(raw)
                regions = [r.scaled(self.region_scale) for r in regions]
                logger.debug("frame %s: %s regions", self.count, len(regions))
                out = composite(grayscale(raw), raw, regions)
            except MissingCollaborator as e:
                self.report(COLOR_FACE, e)
        return out
