"""Repositories package - DB 접근 레이어"""
