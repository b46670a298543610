"""
Paleostress - Stress Tensor Inversion from Geological Structures

Estimates the orientation of the principal stress axes and the stress
ratio R = (σ2 - σ3) / (σ1 - σ3) that best explain striated faults,
fractures, bands, stylolites, veins and conjugate structures, by Monte
Carlo sampling of the rotation group and of R.
"""

__version__ = "0.1.0"
