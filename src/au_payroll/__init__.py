"""Australian payroll calculation and Single Touch Payroll reporting."""

__version__ = "1.0.0"
