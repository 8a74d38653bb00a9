"""
Key usage analysis.

- usage: transitive key scan over the reference graph
- routes: route tree placement and layout key roll-up
"""
