#########################################################################
#       (C) 2017-2018 Department of Petroleum Engineering,              #
#       Univeristy of Louisiana at Lafayette, Lafayette, US.            #
#                                                                       #
# This code is released under the terms of the BSD license, and thus    #
# free for commercial and research use. Feel free to use the code into  #
# your own project with a PROPER REFERENCE.                             #
#                                                                       #
# PyGRDECL Code                                                         #
# Author: Bin Wang                                                      #
# Email: binwang.0213@gmail.com                                         #
#########################################################################

import numpy as np


def getI_J_K(ijk,NX,NY,NZ):
    #Find index [i,j,k] from a flat 3D matrix index [ijk]
    #Works on a single index or on an array of indices
    i=ijk%NX
    j=(ijk//NX)%NY
    k=ijk//(NX*NY)
    return i,j,k

def cartFaces(CellNo,Area,axis):
    """Faces normal to [axis] of a logically Cartesian block of cells

    Arguments
    ---------
    CellNo -- (NZ,NY,NX) array of cell numbers, 0 for inactive cells
    Area   -- (NZ,NY,NX) array of the face area of each cell in this direction
    axis   -- 2 for X faces, 1 for Y faces, 0 for Z faces

    Each returned row holds the cells on the minus/plus side of a face,
    0 when that side is outside the grid or inactive. Faces with no active
    cell on either side are dropped.
    """
    pad=[(0,0)]*CellNo.ndim
    pad[axis]=(1,1)
    C=np.pad(CellNo,pad)
    A=np.pad(Area*(CellNo>0),pad)

    n=C.shape[axis]
    Cm,Cp=np.take(C,range(0,n-1),axis=axis),np.take(C,range(1,n),axis=axis)
    Am,Ap=np.take(A,range(0,n-1),axis=axis),np.take(A,range(1,n),axis=axis)

    neighbors=np.column_stack((Cm.ravel(),Cp.ravel()))
    areas=np.maximum(Am,Ap).ravel()
    keep=np.any(neighbors>0,axis=1)
    return neighbors[keep],areas[keep]

def round_half_up(x):
    #Round like MATLAB round() does for positive values, 2.5->3
    return int(np.floor(x+0.5))
