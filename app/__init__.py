"""
Admission Counselling API
Admission prediction engine for NEET / JEE Main counselling.

Architecture:
- PostgreSQL: historical cutoff ranks (read-only, filled by ingestion)
- MongoDB: college reference documents (read-only)
- Engine: normalizer -> probability model -> composite scorer -> assembler
"""

__version__ = "1.0.0"
