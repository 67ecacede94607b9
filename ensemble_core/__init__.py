"""
Ensemble Calibration Core

Decision core of a multi-model trading bot:
- Gates immature models out of voting
- Converts win/loss records into conservative trust weights
- Switches between explore and exploit risk regimes with hysteresis
- Keeps a bounded trade history that never drops unlearned feedback
"""

__version__ = "0.1.0"
