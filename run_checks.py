from fastapi.testclient import TestClient
from civic_api.main import app

client = TestClient(app)

print('ROOT:')
print(client.get('/').json())

print('\nHEALTH:')
print(client.get('/health').json())

print('\nDB HEALTH:')
try:
    resp = client.get('/health/db')
    print(resp.status_code)
    try:
        print(resp.json())
    except Exception:
        print(resp.text)
except Exception as e:
    print('DB call raised exception:', e)

print('\nISSUES:')
resp = client.get('/issues', params={'limit': 5})
print(resp.status_code)
print(resp.json())

print('\nADMIN WITHOUT TOKEN (expect 401):')
resp = client.get('/admin/analytics')
print(resp.status_code, resp.json())
