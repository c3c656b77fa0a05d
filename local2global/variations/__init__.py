"""Child remapping: move child meta from the local key to the taxonomy key.

- writer.py: verified meta write (hooks suspended, read back, corrective rewrite)
- strategies.py: direct meta, structured attributes, title/SKU inference, native lookup
- service.py: ChildRemapper, runs the strategies per child and aggregates stats
"""
