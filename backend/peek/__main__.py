"""Allow ``python -m peek``."""
from .main import main

main()
