"""ChillIn wearable sample collection and dual-store synchronization.

Subpackages:
    sampling/ — Motion-derived sampling period, adaptive sampling controller
    sync/     — Batch accumulator and the dual-store synchronization engine
    stores/   — Durable (Postgres) and fast (Realtime Database) store backends
"""
