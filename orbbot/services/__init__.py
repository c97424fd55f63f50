"""Services for ledger access, pricing and automation"""
