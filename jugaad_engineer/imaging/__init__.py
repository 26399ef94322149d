"""
Photo preprocessing for the analysis and visualization requests.
"""

from .preprocess import ImagePreparationError, ImageSource, PreparedImage, prepare_image

__all__ = ["ImagePreparationError", "ImageSource", "PreparedImage", "prepare_image"]
