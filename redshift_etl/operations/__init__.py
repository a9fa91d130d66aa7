"""
Operations invoked by the CLI, each receiving the ApplicationContext
"""
