"""LAWICEL protocol engine: codec, transactions, initialization, receive loop and ISO-TP."""
