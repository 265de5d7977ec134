"""Entry point of the src package. Enables python -m src."""

from src.database import close_database
from src.etl.pipeline.cli import main

if __name__ == "__main__":
    try:
        main()
    finally:
        close_database()
