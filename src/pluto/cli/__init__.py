"""Pluto command line interface"""
