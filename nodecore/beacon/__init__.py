"""Beacon chain types, SSZ containers, REST API access and event streams."""