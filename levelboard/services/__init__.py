"""
LevelBoard - Services Package
=============================
"""
