"""Rewrite pipeline services package."""

from explicit_return.services.annotator import annotate, rewrite
from explicit_return.services.inferencer import ReturnTypeInferencer
from explicit_return.services.rewriter import AnnotationRewriter, lift_function_like
from explicit_return.services.serializer import Serializer
from explicit_return.services.type_builder import build_type_node, clone_type_node

__all__ = [
    'annotate',
    'rewrite',
    'ReturnTypeInferencer',
    'AnnotationRewriter',
    'lift_function_like',
    'Serializer',
    'build_type_node',
    'clone_type_node',
]
