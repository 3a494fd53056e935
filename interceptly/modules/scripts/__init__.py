"""
Scripts Module - Black Box Interface

Purpose: Provide the per-environment bootstrap payloads
Interface: render_script(), load_spec()
Hidden: Template lookup order, YAML schema, placeholder rendering

The manager serves the rendered content verbatim and never interprets it.
"""

from .scripts import ScriptSpec, candidate_paths, load_spec, render_script

__all__ = ["ScriptSpec", "candidate_paths", "load_spec", "render_script"]
