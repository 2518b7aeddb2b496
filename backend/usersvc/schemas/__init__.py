"""
Schema module initialization.
Exports all schema classes from submodules for convenient imports.
"""
from .users import *
