"""
Domain services - business rules over the ledger, wallets, shops and requests
"""
