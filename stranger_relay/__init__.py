"""
Rendezvous and relay service for anonymous one-to-one chat
"""
