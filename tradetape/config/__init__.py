"""
Configuration defaults, YAML loading and validation for the trade tape.
"""
