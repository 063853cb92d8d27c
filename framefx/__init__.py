"""Design document.

Abstractions related to image content:

PixelBuffer - A rectangular grid of 8-bit samples with 1 (gray) or 3
        (R,G,B) channels. It is a thin wrapper around an (H,W,C) uint8
        numpy array, plus a history of the steps that produced it.

        A buffer is owned by one stage at a time. Every filter either
        writes into a destination buffer it is handed (which may be
        its own source) or returns a new buffer that the caller owns.

DetectionRegion - An axis-aligned (x,y,w,h) rectangle reported by a
        detector for the current frame. Regions may overlap or fall
        partly outside the frame.

Abstractions related to image processing:

Kernel ops (kernel.py) - separable and dense convolution with
        replicated borders, gradient magnitude, and quantization. These
        operate on the raw sample arrays; no vision-library filter
        primitives are used.

Filter catalog (filters.py) - named PixelBuffer -> PixelBuffer
        functions built from the kernel ops.

Compositor (composite.py) - copies one buffer's pixels into another
        inside a list of regions.

FrameRouter (router.py) - holds the set of enabled filters and applies
        them to each frame in a fixed order.

Collaborators - frame sources (source.py), detectors and estimators
        (detect.py) and display/save sinks (stage.py). These are thin
        wrappers around OpenCV and the storage layer.

Stage and Pipeline - as frames move from a source to a sink, they pass
        through stages. DetectFaces attaches face regions to a frame
        and FilterFrames hands them to the router. The pipeline runs
        one frame to completion before it accepts the next, so frames
        come out in the order they went in.

"""
