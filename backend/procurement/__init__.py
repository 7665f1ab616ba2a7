# __init__.py
# RFP procurement service: proposal extraction, scoring and comparison

__version__ = "0.2.0"
