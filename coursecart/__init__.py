# -*- coding: utf-8 -*-
"""coursecart: course storefront payment and order fulfillment service."""

__version__ = "0.1.0"
