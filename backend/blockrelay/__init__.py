"""Blockrelay: комнаты и ретрансляция состояния для сетевого тетриса."""
