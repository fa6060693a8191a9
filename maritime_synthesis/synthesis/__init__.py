"""Cross-agent synthesis layer.

Modules:
  gate      — whether a synthesis pass runs, and over which agents
  context   — agent field discovery and bounded context compression
  prompts   — instruction template plus domain focus blocks
  validator — schema validation of the model's JSON reply
  engine    — one synthesis attempt per turn, with metrics
"""
