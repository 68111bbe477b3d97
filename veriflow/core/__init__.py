"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

Core runtime components: credentials, auth, signing, pooling, caching,
retry policy and the clock abstraction.
"""
