"""Transfer learning image classification on a pretrained network."""

__version__ = "0.0.1"
