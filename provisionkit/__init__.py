"""
ProvisionKit - provision toolchains and source repositories.
"""

__version__ = "0.1.0"
