"""
Base classes and utilities for payment views.
"""

import logging

from rest_framework.views import APIView

logger = logging.getLogger(__name__)


class BasePaymentView(APIView):
    """
    Base class for all payment views with common functionality.
    """

    def handle_exception(self, exc):
        """
        Centralized exception handling for payment views. Rendering is left
        to the project exception handler.
        """
        logger.error(f"Payment view error in {self.__class__.__name__}: {exc}")
        return super().handle_exception(exc)
