"""novu-init: bootstrap a Novu + Next.js project with a live bridge endpoint."""

__version__ = "0.3.0"
