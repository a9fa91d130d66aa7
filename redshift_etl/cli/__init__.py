"""
Command line interface for Redshift ETL Pipeline
"""
