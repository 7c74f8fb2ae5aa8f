"""
Training Engines (FINAL / FROZEN)

This directory contains the pure computations behind the analysis phases.

IMPORTANT:
- Engines hold no cross-run state.
- Randomness is always injected (random.Random).
- Steps orchestrate engines; engines never report progress themselves.
"""
