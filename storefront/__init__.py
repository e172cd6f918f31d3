"""
                Restaurant Storefront

Menu management and customer ordering backend with a remote document
store and an automatic local-storage fallback.

Author: Khalil_Bannouri
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Khalil_Bannouri"
