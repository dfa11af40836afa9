"""Helpers for command-line selection and argument counts."""