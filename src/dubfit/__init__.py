"""
Duration-fit dubbing - narration synthesis constrained to fixed timeline slots.

A pipeline for:
- Synthesizing speech for time-slotted segments in parallel batches
- Classifying each clip's speed factor against an acceptance band
- Rewriting out-of-band segments with GPT and resynthesizing them
- Time-stretching clips (ffmpeg atempo chains) to fill their slots exactly
"""

__version__ = "0.1.0"
