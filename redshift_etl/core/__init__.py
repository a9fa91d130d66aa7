"""
Core components: option vocabulary, credentials, table descriptors,
SQL compilation, load orchestration and the connector factory
"""
