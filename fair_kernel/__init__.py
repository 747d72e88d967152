"""
fair_kernel -- stock ledger and accounting kernel for craft-fair events.

Layers (lower never imports higher):
    db        declarative base, column types, engine, immutability listeners
    models    ORM rows
    domain    pure rules: enums, DTOs, policy, stock fold, exchange validator,
              event lifecycle
    selectors Repository over a caller-owned Session
    services  write side: ledger, sale recorder, events, catalog
"""
