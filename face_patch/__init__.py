"""
Face Patch - Source Package

Replace a square region of a target photo with a generated likeness of a
source face, blend it back with a feathered edge and compare before/after.

Modules:
- geometry: Display/native coordinate mapping and square selection
- compositing: Crop extraction, feathered compositing and compare rendering
- generation: Generation client contract, retry policy and Gemini client
- editor: Edit session controller tying the pipeline together
- ui: Configuration, command line interface and interactive viewer
"""

__version__ = "1.0.0"
__author__ = "Face Patch"
