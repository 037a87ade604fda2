"""
Form analysis pipeline for the Form Coach backend.

Turns a pose sequence into a FormAnalysis report in four stages:
    Stage 1: Frame-sequence analysis (exercise rule catalog + geometry)
    Stage 2: Quality & confidence assessment (pose- or metadata-driven)
    Stage 3: Recommendation & coaching (LangGraph coaching agent)
    Stage 4: Report assembly
"""
