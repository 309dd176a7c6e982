"""
The CONTROLLER layer bridges the model and the drawing surfaces: views,
tab state machines, user file flows and background loading.
"""
