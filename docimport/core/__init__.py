"""
Core schema model, error taxonomy and inference engine.
"""
