"""Modelos Pydantic para validación"""
from src.models.commerce import CommerceRecord, Order, Customer
