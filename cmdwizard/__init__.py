"""cmdwizard - build command lines step by step from declarative configs."""

__version__ = '0.1.0'
