"""Generate D2 component and class diagrams from NestJS projects."""

__version__ = "1.2.0"
