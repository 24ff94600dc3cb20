"""ClutterBug inventory core: hierarchy engine, container tree and photo storage"""
