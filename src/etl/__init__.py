"""ETL module for normalizing, scoring, and aggregating theater critic reviews."""
