"""Allows ``python -m visualizeit``."""
from visualizeit.main import main

main()
