"""
Utilities: configuration, logging, connections and staging stores
"""
