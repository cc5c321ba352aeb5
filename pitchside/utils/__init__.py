"""
Static lookups and file formats shared by the engine and scripts.
"""
