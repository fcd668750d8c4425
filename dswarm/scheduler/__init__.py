"""Nodes, scheduling expressions, filters, placement strategies and the scheduler."""