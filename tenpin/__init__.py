"""
Tenpin Package
==============

Ten-pin bowling on a simulated lane: the pymunk lane, throw resolution,
scoring from single games up to multi-player series, and an evaluation
harness for automated bowlers.

All tunable parameters are in game_config.yaml.
"""
