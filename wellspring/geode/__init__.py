"""GEODE reference data, workflow registry, timeline and payment rules"""
