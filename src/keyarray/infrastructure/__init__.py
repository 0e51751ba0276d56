"""
Runtime layer of KeyArray: configuration, storage ownership modes, the
`Array` value, the iteration engine and linear-algebra dispatch.
"""
