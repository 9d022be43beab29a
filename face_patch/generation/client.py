"""
Generation Client Contract

A generation client takes the source face and the target crop and returns
one replacement bitmap, or raises a ``GenerationError`` subclass.
"""

from abc import ABC, abstractmethod

import numpy as np


class GenerationClient(ABC):
    """Interface to a generative image service."""

    @abstractmethod
    def generate(self, source_face: np.ndarray, target_crop: np.ndarray) -> np.ndarray:
        """
        Generate the replacement patch.

        Args:
            source_face: Bitmap with the identity to transfer
            target_crop: Bitmap of the selected region of the target photo

        Returns:
            Generated bitmap

        Raises:
            GenerationError: One of MissingCredential, RateLimited,
                ServiceUnavailable, GenerationTimeout, ContentPolicyBlocked,
                NoImageReturned
        """
