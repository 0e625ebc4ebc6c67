"""DAO committee services"""
