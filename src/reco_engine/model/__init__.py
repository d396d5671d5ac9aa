"""Tabular recommendation MEMDP: loading, queries and sampling."""

from reco_engine.model.interface import MEMDPModel
from reco_engine.model.loader import ModelTables, build_model_tables, load_model_tables
from reco_engine.model.recomodel import Recomodel
from reco_engine.model.sampler import Sampler
from reco_engine.model.transitions import TransitionModel

__all__ = [
    "MEMDPModel",
    "ModelTables",
    "Recomodel",
    "Sampler",
    "TransitionModel",
    "build_model_tables",
    "load_model_tables",
]
