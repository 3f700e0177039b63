"""isA platform microservices"""
